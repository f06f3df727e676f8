from django.urls import path
from .views import OperatorDispatchSettingsView

urlpatterns = [
    path("settings/dispatch/", OperatorDispatchSettingsView.as_view(), name="operator-dispatch-settings"),
]
