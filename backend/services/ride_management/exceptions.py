"""Domain exceptions raised by booking and offer actions."""


class RideNotFoundError(Exception):
    """Raised when a booking cannot be found."""
    pass


class RideNotAvailableError(Exception):
    """Raised when a booking is no longer in the state the action expects."""
    pass


class OfferExpiredError(Exception):
    """Raised when a ride offer has expired."""
    pass


class OfferNotFoundError(Exception):
    """Raised when a ride offer cannot be found for this driver."""
    pass


class DriverNotAvailableError(Exception):
    """Raised when a driver can't take part in dispatch right now."""
    pass


class ActiveRideExistsError(Exception):
    """Raised when a passenger already has an active booking."""
    pass


class OperatorNotFoundError(Exception):
    """Raised when a booking references an unknown operator."""
    pass
