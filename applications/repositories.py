"""
Application repository - Data access layer for lease applications.
"""
from typing import Optional
from django.db.models import Q, QuerySet
from core.repositories import BaseRepository
from core.constants import ApplicationStatus
from .models import Application


class ApplicationRepository(BaseRepository[Application]):
    """Repository for Application model"""

    def __init__(self):
        super().__init__(Application)

    def count_pending(self, email: str) -> int:
        return self.model.objects.filter(
            applicant_email__iexact=email,
            status=ApplicationStatus.PENDING,
        ).count()

    def has_open_for_property(self, email: str, property_id) -> bool:
        return self.model.objects.filter(
            applicant_email__iexact=email,
            property_id=property_id,
            status__in=ApplicationStatus.OPEN,
        ).exists()

    def live_for(self, tenant, property_id) -> Optional[Application]:
        """Newest pending/approved/reserved application of a tenant for a property"""
        return self.model.objects.filter(
            Q(tenant=tenant) | Q(tenant__isnull=True, applicant_email__iexact=tenant.email),
            property_id=property_id,
            status__in=ApplicationStatus.OPEN + [ApplicationStatus.RESERVED],
        ).order_by('-created_at').first()

    def pending_siblings(self, application) -> QuerySet:
        """Other pending applications for the same property"""
        return self.model.objects.filter(
            property_id=application.property_id,
            status=ApplicationStatus.PENDING,
        ).exclude(id=application.id)

    def other_pending_by_applicant(self, application) -> QuerySet:
        """The applicant's pending applications for other properties"""
        return self.model.objects.filter(
            applicant_email__iexact=application.applicant_email,
            status=ApplicationStatus.PENDING,
        ).exclude(id=application.id).exclude(property_id=application.property_id)

    def expiry_candidates(self, now, today) -> QuerySet:
        return self.model.objects.filter(
            Q(expires_at__lt=now) | Q(preferred_move_in__lt=today),
            status__in=ApplicationStatus.OPEN,
        ).order_by('id')

    def expiring_between(self, start, end) -> QuerySet:
        return self.model.objects.filter(
            status__in=ApplicationStatus.OPEN,
            expires_at__gte=start,
            expires_at__lte=end,
            expiry_warning_sent_at__isnull=True,
        ).select_related('property', 'tenant').order_by('expires_at')

    def holder_of_property(self, property_id, exclude_id=None) -> Optional[Application]:
        """Approved or reserved application currently holding a property"""
        queryset = self.model.objects.filter(
            property_id=property_id,
            status__in=[ApplicationStatus.APPROVED, ApplicationStatus.RESERVED],
        )
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.order_by('created_at').first()
