"""
Tenant repository - Data access layer for Tenant domain.
"""
from typing import Optional
from core.repositories import BaseRepository
from core.constants import TenantStatus
from .models import Tenant


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant model"""

    def __init__(self):
        super().__init__(Tenant)

    def get_by_email(self, email: str) -> Optional[Tenant]:
        """Tenant lookup is case-insensitive on email"""
        if not email:
            return None
        return self.model.objects.filter(email__iexact=email.strip()).first()

    def next_tenant_code(self) -> str:
        """Generate the next free TEN00001-style code"""
        number = self.model.objects.count() + 1
        code = f"TEN{number:05d}"
        while self.exists(tenant_code=code):
            number += 1
            code = f"TEN{number:05d}"
        return code

    def create_from_application(self, application) -> Tenant:
        """Create a tenant account from an application's applicant details"""
        name_parts = application.applicant_name.strip().split(' ')
        first_name = name_parts[0]
        last_name = ' '.join(name_parts[1:]) or first_name
        return self.create(
            tenant_code=self.next_tenant_code(),
            first_name=first_name,
            last_name=last_name,
            email=application.applicant_email.strip().lower(),
            phone=application.phone,
            status=TenantStatus.ACTIVE,
        )
