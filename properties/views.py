from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated
from api.permissions import IsAdmin
from core.constants import PropertyStatus
from .models import Property
from .serializers import PropertySerializer


class PropertyViewSet(viewsets.ModelViewSet):
    """
    Property catalogue.
    Admins manage all properties; everyone else browses available ones.
    Status and tenant are owned by the lease workflow and are read-only here.
    """
    serializer_class = PropertySerializer
    search_fields = ['name', 'address', 'city']
    ordering_fields = ['rent', 'name', 'created_at']
    ordering = ['name']

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsAdmin()]

    def get_queryset(self):
        queryset = Property.objects.select_related('tenant')
        if not IsAdmin().has_permission(self.request, self):
            return queryset.filter(status=PropertyStatus.AVAILABLE)

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset
