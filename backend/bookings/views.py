from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsPassenger, IsDriver, IsOperator
from drivers.views import require_driver
from .models import Booking, BookingStatus, RideOffer
from .serializers import (
    BookingSerializer,
    BookingCreateSerializer,
    BookingCancelSerializer,
    RideOfferSerializer,
    ManualAssignSerializer,
)

from services import ride_management, offers
from services.matching import manual_assign_booking
from services.ride_management.exceptions import (
    RideNotFoundError,
    RideNotAvailableError,
    OfferExpiredError,
    OfferNotFoundError,
    DriverNotAvailableError,
    ActiveRideExistsError,
    OperatorNotFoundError,
)


def _error(code: str, message: str, http_status: int) -> Response:
    return Response({'success': False, 'error': code, 'message': message}, status=http_status)


# ==================== Passenger Booking APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPassenger])
def create_booking(request):
    """Create a new booking; a driver is searched for once it is saved."""
    serializer = BookingCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)

    try:
        result = ride_management.create_booking(
            request.user,
            data.pop('operator_code'),
            data.pop('pickup_latitude'),
            data.pop('pickup_longitude'),
            **data,
        )
    except ActiveRideExistsError as e:
        return _error('active_booking_exists', str(e), status.HTTP_400_BAD_REQUEST)
    except OperatorNotFoundError as e:
        return _error('operator_not_found', str(e), status.HTTP_400_BAD_REQUEST)

    return Response({
        **BookingSerializer(result.booking).data,
        'message': result.message,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPassenger])
def get_current_booking(request):
    """
    Get passenger's current live booking (POLLING ENDPOINT)

    Returns driver details and ETA once a driver is assigned
    """
    booking = ride_management.check_active_booking(request.user)
    if not booking:
        return Response({
            'has_active_booking': False,
            'message': 'No active booking found'
        })

    response_data = {
        'has_active_booking': True,
        'booking': BookingSerializer(booking).data,
        'status': booking.status,
        'driver_assigned': booking.status in BookingStatus.ACTIVE,
    }

    if booking.status == BookingStatus.PENDING_ASSIGNMENT:
        response_data['message'] = 'Looking for a driver...'
    elif booking.status == BookingStatus.DRIVER_ASSIGNED:
        response_data['message'] = 'Driver is on the way!'
    elif booking.status == BookingStatus.ARRIVED_AT_PICKUP:
        response_data['message'] = 'Your driver has arrived.'
    else:
        response_data['message'] = 'Enjoy your ride.'

    return Response(response_data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPassenger])
def cancel_booking(request, booking_id):
    """Cancel booking by passenger"""
    serializer = BookingCancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    reason = serializer.validated_data.get('reason') or 'passenger_cancelled'

    try:
        result = ride_management.cancel_booking_by_passenger(request.user, booking_id, reason=reason)
    except RideNotFoundError as e:
        return _error('booking_not_found', str(e), status.HTTP_404_NOT_FOUND)
    except RideNotAvailableError as e:
        return _error('cannot_cancel', str(e), status.HTTP_400_BAD_REQUEST)

    return Response({
        'success': True,
        'message': result.message,
        'booking_id': result.booking.id,
        'cancelled_at': result.booking.cancelled_at,
    })


# ==================== Driver Offer APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDriver])
def get_current_offer(request):
    """
    The driver's pending offer, if any, with its countdown.

    The driver app polls this to drive the offer dialog timer.
    """
    ok, driver = require_driver(request.user)
    if ok is False:
        return driver

    now = timezone.now()
    pending = RideOffer.objects.filter(driver=driver, status=RideOffer.STATUS_PENDING)

    # Lapsed offers the periodic pass hasn't reached yet are closed here
    for offer_id in list(pending.filter(expires_at__lte=now).values_list('pk', flat=True)):
        offers.expire_offer(offer_id, now=now)

    offer = pending.filter(expires_at__gt=now).first()
    if not offer:
        return Response({'has_offer': False})

    serializer = RideOfferSerializer(offer, context={'now': now})
    return Response({'has_offer': True, 'offer': serializer.data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDriver])
def get_offer_countdown(request, offer_id):
    ok, driver = require_driver(request.user)
    if ok is False:
        return driver

    offer = RideOffer.objects.filter(pk=offer_id, driver=driver).first()
    if not offer:
        return _error('offer_not_found', 'This ride offer is no longer active for you.', status.HTTP_404_NOT_FOUND)

    countdown = offers.offer_countdown(offer)
    return Response({
        'offer_id': countdown.offer_id,
        'status': countdown.status,
        'expires_at': countdown.expires_at,
        'seconds_remaining': countdown.seconds_remaining,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def accept_offer(request, offer_id):
    """Accept a ride offer that was made to this driver."""
    ok, driver = require_driver(request.user)
    if ok is False:
        return driver

    try:
        offer = offers.accept_offer(driver, offer_id)
    except OfferNotFoundError as e:
        return _error('offer_not_found', str(e), status.HTTP_404_NOT_FOUND)
    except OfferExpiredError as e:
        return _error('offer_expired', str(e), status.HTTP_410_GONE)
    except RideNotAvailableError as e:
        return _error('ride_not_available', str(e), status.HTTP_409_CONFLICT)

    booking = Booking.objects.get(pk=offer.booking_id)
    return Response({
        'success': True,
        'booking': BookingSerializer(booking).data,
        'message': 'Ride accepted! Navigate to pickup location.'
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def decline_offer(request, offer_id):
    """Decline a pending offer; the booking is offered to the next driver."""
    ok, driver = require_driver(request.user)
    if ok is False:
        return driver

    try:
        offers.decline_offer(driver, offer_id)
    except OfferNotFoundError as e:
        return _error('offer_not_found', str(e), status.HTTP_404_NOT_FOUND)

    return Response({'success': True, 'message': 'Offer declined'})


# ==================== Driver Ride Progress APIs ====================

def _driver_progress(request, booking_id, action):
    ok, driver = require_driver(request.user)
    if ok is False:
        return driver

    try:
        result = action(driver, booking_id)
    except RideNotFoundError as e:
        return _error('booking_not_found', str(e), status.HTTP_404_NOT_FOUND)
    except RideNotAvailableError as e:
        return _error('invalid_state', str(e), status.HTTP_409_CONFLICT)

    return Response({
        'success': True,
        'booking': BookingSerializer(result.booking).data,
        'message': result.message,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def mark_arrived(request, booking_id):
    return _driver_progress(request, booking_id, ride_management.mark_arrived)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def start_ride(request, booking_id):
    return _driver_progress(request, booking_id, ride_management.start_ride)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def complete_ride(request, booking_id):
    return _driver_progress(request, booking_id, ride_management.complete_ride)


# ==================== Operator Dispatch APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOperator])
def manual_assign(request, booking_id):
    """Operator hands a waiting booking to one of their drivers."""
    serializer = ManualAssignSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = manual_assign_booking(
            booking_id,
            serializer.validated_data['driver_id'],
            operator_code=request.user.operator_code,
        )
    except RideNotFoundError as e:
        return _error('booking_not_found', str(e), status.HTTP_404_NOT_FOUND)
    except RideNotAvailableError as e:
        return _error('ride_not_available', str(e), status.HTTP_409_CONFLICT)
    except DriverNotAvailableError as e:
        return _error('driver_not_available', str(e), status.HTTP_400_BAD_REQUEST)

    return Response({
        'success': True,
        'booking_id': result.booking_id,
        'driver_id': result.driver_id,
        'offer_id': result.offer_id,
    })
