from django.db import transaction

from accounts.models import User
from common.counters import next_passenger_code


@transaction.atomic
def register_passenger(username: str, password: str, phone_number: str = "", **extra) -> User:
    """Create a passenger account with its CU### code."""
    user = User.objects.create_user(
        username=username,
        password=password,
        role="passenger",
        phone_number=phone_number,
        **extra,
    )
    user.user_code = next_passenger_code()
    user.save(update_fields=["user_code"])
    return user
