from django.db.models import Q
from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from api.permissions import IsAdmin, IsActiveTenant, IsAdminOrActiveTenant, tenant_profile
from core.constants import ActorType
from core.exceptions import PermissionDeniedError
from .models import Application
from .serializers import (
    ApplicationSerializer, ApplicationCreateSerializer, DecisionSerializer, CancelSerializer,
)
from .services import LeaseService


class ApplicationViewSet(mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """
    Lease applications.

    Tenants and applicants submit, list and cancel their own applications.
    Admins see everything, decide pending applications and cancel any open one.
    """
    serializer_class = ApplicationSerializer
    permission_classes = [IsAuthenticated, IsAdminOrActiveTenant]
    ordering = ['-created_at']

    def get_permissions(self):
        if self.action == 'decide':
            return [IsAuthenticated(), IsAdmin()]
        if self.action == 'create':
            return [IsAuthenticated(), IsActiveTenant()]
        return super().get_permissions()

    def get_queryset(self):
        queryset = Application.objects.select_related('property', 'tenant')
        user = self.request.user
        if not IsAdmin().has_permission(self.request, self):
            own = Q(submitted_by=user) | Q(tenant__user=user)
            if user.email:
                own |= Q(applicant_email__iexact=user.email)
            queryset = queryset.filter(own)

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = ApplicationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        application = LeaseService().submit_application(
            serializer.to_dto(),
            tenant=tenant_profile(request.user),
            user=request.user,
            request=request,
        )
        return Response(ApplicationSerializer(application).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def decide(self, request, pk=None):
        """Approve or reject a pending application"""
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        application = LeaseService().decide(
            pk,
            serializer.validated_data['decision'],
            comments=serializer.validated_data['comments'],
            actor=request.user,
            request=request,
        )
        return Response(ApplicationSerializer(application).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel an application (tenant: own pending/approved; admin: any open or reserved)"""
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        is_admin = IsAdmin().has_permission(request, self)
        if not is_admin and not self.get_queryset().filter(pk=pk).exists():
            if Application.objects.filter(pk=pk).exists():
                raise PermissionDeniedError(message="You can only cancel your own applications.")

        application = LeaseService().cancel(
            pk,
            actor=request.user,
            actor_type=ActorType.ADMIN if is_admin else ActorType.TENANT,
            reason=serializer.validated_data['reason'],
            request=request,
        )
        return Response(ApplicationSerializer(application).data)
