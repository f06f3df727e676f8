"""
Realtime app: notifications and channel-layer push.

Key Components:
    - models.py: persisted Notification records (the notification sink)
    - notifications.py: notify() plus driver/passenger event push helpers
    - reminders.py: re-notify users about unread notifications

Usage:
    from realtime.notifications import notify, notify_driver_event, notify_passenger_event
"""
