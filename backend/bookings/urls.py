from django.urls import path
from . import views

app_name = 'bookings'

urlpatterns = [
    # Passenger APIs
    path('passenger/request/', views.create_booking, name='create-booking'),
    path('passenger/current/', views.get_current_booking, name='current-booking'),
    path('passenger/<int:booking_id>/cancel/', views.cancel_booking, name='cancel-booking'),

    # Driver offer APIs
    path('offers/current/', views.get_current_offer, name='current-offer'),
    path('offers/<int:offer_id>/countdown/', views.get_offer_countdown, name='offer-countdown'),
    path('offers/<int:offer_id>/accept/', views.accept_offer, name='accept-offer'),
    path('offers/<int:offer_id>/decline/', views.decline_offer, name='decline-offer'),

    # Driver ride progress
    path('handle/<int:booking_id>/arrived/', views.mark_arrived, name='mark-arrived'),
    path('handle/<int:booking_id>/start/', views.start_ride, name='start-ride'),
    path('handle/<int:booking_id>/complete/', views.complete_ride, name='complete-ride'),

    # Operator dispatch
    path('operator/<int:booking_id>/assign/', views.manual_assign, name='manual-assign'),
]
