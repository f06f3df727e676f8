from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsOperator
from operators.models import OperatorDispatchSettings
from operators.serializers import OperatorDispatchSettingsSerializer
from operators import services


class OperatorDispatchSettingsView(APIView):
    permission_classes = [IsAuthenticated, IsOperator]

    def _get_settings(self, request):
        return OperatorDispatchSettings.objects.filter(
            operator_code=request.user.operator_code
        ).first()

    def get(self, request):
        settings_obj = self._get_settings(request)
        if settings_obj is None:
            return Response({"error": "Operator settings not found"}, status=404)
        return Response(OperatorDispatchSettingsSerializer(settings_obj).data)

    def put(self, request):
        settings_obj = self._get_settings(request)
        if settings_obj is None:
            return Response({"error": "Operator settings not found"}, status=404)

        serializer = OperatorDispatchSettingsSerializer(settings_obj, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        services.update_dispatch_settings(settings_obj, **serializer.validated_data)

        return Response(OperatorDispatchSettingsSerializer(settings_obj).data)
