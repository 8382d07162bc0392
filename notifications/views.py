from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from .models import Notification
from .serializers import NotificationSerializer


class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Notifications for the current user.
    Admins see the admin stream, tenants see their own messages.
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        if user.is_admin_role:
            queryset = Notification.objects.filter(user_type=Notification.USER_TYPE_ADMIN)
        else:
            queryset = Notification.objects.filter(
                user_type=Notification.USER_TYPE_TENANT,
                tenant__user=user
            )

        if self.request.query_params.get('unread') == 'true':
            queryset = queryset.filter(is_read=False)
        return queryset

    @action(detail=True, methods=['post'])
    def read(self, request, pk=None):
        """Mark a notification as read"""
        notification = self.get_object()
        notification.mark_read()
        return Response(self.get_serializer(notification).data)
