"""
Sequential counter service.

Hands out gap-free, strictly increasing integers per namespace and formats
them into the human-readable IDs used across the platform:

    OP001            operator codes
    OP001/DR0001     driver codes (per operator)
    CU001            passenger codes
    OP001/00000001   booking codes (per operator)
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import F

from common.models import SequentialCounter

logger = logging.getLogger(__name__)

OPERATOR_NAMESPACE = "operatorId"
PASSENGER_NAMESPACE = "passengerId"


def driver_namespace(operator_code: str) -> str:
    return f"driverId_{operator_code}"


def booking_namespace(operator_code: str) -> str:
    return f"bookingId_{operator_code}"


def next_value(namespace: str) -> int:
    """
    Increment and return the counter for a namespace.

    The increment is a single UPDATE ... SET value = value + 1 inside a
    transaction, so the row stays locked until the new value has been read.
    A namespace is created lazily on first use and starts at 1.

    Args:
        namespace: Counter name, e.g. "bookingId_OP001"

    Returns:
        The new counter value
    """
    with transaction.atomic():
        updated = SequentialCounter.objects.filter(namespace=namespace).update(
            current_value=F("current_value") + 1
        )
        if not updated:
            try:
                # Savepoint so a lost creation race doesn't poison the outer block
                with transaction.atomic():
                    SequentialCounter.objects.create(namespace=namespace, current_value=1)
                logger.info("Initialised counter %s", namespace)
                return 1
            except IntegrityError:
                SequentialCounter.objects.filter(namespace=namespace).update(
                    current_value=F("current_value") + 1
                )

        return SequentialCounter.objects.values_list("current_value", flat=True).get(
            namespace=namespace
        )


def format_operator_code(value: int) -> str:
    return f"OP{value:03d}"


def format_driver_code(operator_code: str, value: int) -> str:
    return f"{operator_code}/DR{value:04d}"


def format_passenger_code(value: int) -> str:
    return f"CU{value:03d}"


def format_booking_code(operator_code: str, value: int) -> str:
    return f"{operator_code}/{value:08d}"


def next_operator_code() -> str:
    return format_operator_code(next_value(OPERATOR_NAMESPACE))


def next_driver_code(operator_code: str) -> str:
    return format_driver_code(operator_code, next_value(driver_namespace(operator_code)))


def next_passenger_code() -> str:
    return format_passenger_code(next_value(PASSENGER_NAMESPACE))


def next_booking_code(operator_code: str) -> str:
    return format_booking_code(operator_code, next_value(booking_namespace(operator_code)))
