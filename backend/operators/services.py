import logging

from django.db import transaction

from common.counters import next_operator_code
from operators.models import OperatorDispatchSettings

logger = logging.getLogger(__name__)


@transaction.atomic
def onboard_operator(operator_name: str) -> OperatorDispatchSettings:
    """
    Create dispatch settings for a newly approved operator.

    Auto dispatch starts disabled; the operator opts in from their settings.

    Args:
        operator_name: Company or display name

    Returns:
        The created OperatorDispatchSettings with a fresh OP### code
    """
    settings_obj = OperatorDispatchSettings.objects.create(
        operator_code=next_operator_code(),
        operator_name=operator_name,
        dispatch_mode="auto",
        auto_dispatch_enabled=False,
    )
    logger.info("Onboarded operator %s (%s)", settings_obj.operator_code, operator_name)
    return settings_obj


def update_dispatch_settings(settings_obj: OperatorDispatchSettings, **changes) -> OperatorDispatchSettings:
    """Apply validated setting changes; only touched fields are written."""
    for field, value in changes.items():
        setattr(settings_obj, field, value)
    settings_obj.save(update_fields=[*changes.keys(), "updated_at"])
    logger.info("Operator %s dispatch settings updated: %s", settings_obj.operator_code, sorted(changes))
    return settings_obj
