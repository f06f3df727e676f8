import os

from channels.routing import ProtocolTypeRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'taxi_backend.settings.settings')

# HTTP only; realtime events go out through the channel layer
application = ProtocolTypeRouter({
    "http": get_asgi_application(),
})
