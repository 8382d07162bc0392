"""
Lease state machine.

    pending  --approve-->            approved  (tenant, deposit invoice, 48h deadline)
    pending  --reject-->             rejected
    approved --deposit confirmed-->  reserved  (property reserved for the tenant)
    pending|approved --deadline passed, nothing paid--> expired
    pending|approved(|reserved for admins) --cancel--> cancelled

Application, Property and Tenant status fields are written only here.
Every transition leaves one audit row in the same transaction.
"""
from datetime import timedelta
from typing import Optional

from django.db import transaction, DatabaseError
from django.utils import timezone

from audit.helpers import log_action
from audit.models import AuditLog
from billing.conf import get_billing_config
from billing.repositories import InvoiceRepository, PaymentRepository
from billing.services import BillingService, local_date, format_deadline
from core.constants import (
    ActorType, ApplicationStatus, Decision, InvoiceStatus, InvoiceType, PropertyStatus,
)
from core.dto import ApplicationDTO, BatchResult, DepositConfirmation
from core.exceptions import (
    BaseApplicationException, DuplicateOperationError, InvalidStateError,
    ValidationError,
)
from core.repositories import BaseRepository
from core.services import BaseService
from core.validators import ApplicationValidator
from notifications import sink
from notifications.catalog import Event
from properties.models import Property
from tenants.repositories import TenantRepository
from .models import Application
from .repositories import ApplicationRepository


class LeaseService(BaseService):
    """Application, property and tenant transitions"""

    def __init__(self, config=None):
        super().__init__()
        self.config = config or get_billing_config()
        self.applications = ApplicationRepository()
        self.properties = BaseRepository(Property)
        self.tenants = TenantRepository()
        self.invoices = InvoiceRepository()
        self.payments = PaymentRepository()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_qualifying_payment(self, application) -> bool:
        """
        True when the applicant has paid for this property: a paid deposit
        invoice, an approved deposit payment, or a paid rent invoice.
        """
        if not application.tenant_id or not application.property_id:
            return False
        tenant_id, property_id = application.tenant_id, application.property_id
        return (
            self.invoices.has_paid(tenant_id, property_id, [InvoiceType.BOOKING_DEPOSIT])
            or self.payments.has_approved_deposit(tenant_id, property_id)
            or self.invoices.has_paid(tenant_id, property_id, InvoiceType.RENT_TYPES)
        )

    # ------------------------------------------------------------------
    # Submission and review
    # ------------------------------------------------------------------

    @transaction.atomic
    def submit_application(self, data: ApplicationDTO, tenant=None, user=None, now=None, request=None) -> Application:
        """
        File a new application for an available property.

        Raises:
            NotFoundError: unknown property
            InvalidStateError: property not available, or the tenant already holds one
            DuplicateOperationError: an open application for this property already exists
            ValidationError: pending limit, move-in date or income rules
        """
        now = now or timezone.now()
        today = local_date(now)

        prop = self.properties.get_or_raise(data.property_id)
        if prop.status != PropertyStatus.AVAILABLE:
            raise InvalidStateError(
                message="This property is not available for applications.",
                code="PROPERTY_NOT_AVAILABLE",
                details={'property_id': prop.id, 'status': prop.status}
            )

        name = (data.applicant_name or '').strip()
        email = (data.applicant_email or '').strip().lower()
        if not name or not email:
            raise ValidationError(message="Applicant name and email are required", code="APPLICANT_REQUIRED")

        if tenant is not None and self.properties.exists(
            tenant=tenant, status__in=[PropertyStatus.RESERVED, PropertyStatus.OCCUPIED]
        ):
            raise InvalidStateError(
                message="You already hold a property and cannot apply for another one.",
                code="TENANT_ALREADY_HOUSED"
            )

        if self.applications.has_open_for_property(email, prop.id):
            raise DuplicateOperationError(
                message="You already have an open application for this property.",
                code="APPLICATION_EXISTS"
            )

        self._ensure_not_held(prop)

        ApplicationValidator.validate_pending_limit(
            self.applications.count_pending(email), self.config.max_pending_applications
        )
        ApplicationValidator.validate_move_in(data.preferred_move_in, today)
        ApplicationValidator.validate_income(
            data.monthly_income, prop.rent, self.config.min_income_rent_multiple
        )

        application = self.applications.create(
            applicant_name=name,
            applicant_email=email,
            phone=data.phone,
            monthly_income=data.monthly_income,
            occupation=data.occupation,
            occupants=data.occupants,
            lease_duration_months=data.lease_duration_months,
            preferred_move_in=data.preferred_move_in,
            property=prop,
            tenant=tenant,
            submitted_by=user if user is not None and user.is_authenticated else None,
            status=ApplicationStatus.PENDING,
        )

        log_action(
            actor=user,
            actor_type=ActorType.TENANT if tenant else ActorType.APPLICANT,
            action=AuditLog.ACTION_SUBMIT_APPLICATION,
            entity=AuditLog.ENTITY_APPLICATION,
            entity_id=application.id,
            after=application.snapshot(),
            description=f"{name} applied for {prop.name}",
            request=request,
        )
        sink.notify_on_commit(
            Event.APPLICATION_SUBMITTED,
            context={
                'applicant_name': name,
                'applicant_email': email,
                'property_name': prop.name,
            },
            metadata={'application_id': application.id},
        )

        self.log_info("Application submitted", application_id=application.id, property_id=prop.id)
        return application

    @transaction.atomic
    def decide(self, application_id, decision, comments='', actor=None, now=None, request=None) -> Application:
        """
        Approve or reject a pending application.

        Approval creates the tenant when needed, invoices the booking deposit,
        rejects the property's other pending applications and cancels the
        applicant's pending applications elsewhere.
        """
        now = now or timezone.now()
        if decision not in dict(Decision.CHOICES):
            raise ValidationError(message="Decision must be approve or reject", code="INVALID_DECISION")

        application = self.applications.get_for_update(application_id)
        if application.status != ApplicationStatus.PENDING:
            raise InvalidStateError(
                message=f"Only pending applications can be decided (current: {application.status}).",
                code="APPLICATION_NOT_PENDING",
                details={'status': application.status}
            )

        if decision == Decision.REJECT:
            self._reject(application, comments, actor, ActorType.ADMIN, now, request,
                         action=AuditLog.ACTION_REJECT_APPLICATION)
            return application

        prop = self.properties.get_for_update(application.property_id)
        if prop.status != PropertyStatus.AVAILABLE:
            raise InvalidStateError(
                message="The property is no longer available.",
                code="PROPERTY_NOT_AVAILABLE",
                details={'property_id': prop.id, 'status': prop.status}
            )
        self._ensure_not_held(prop, exclude_id=application.id)

        tenant = self._tenant_for(application, actor, request)

        before = application.snapshot()
        application.tenant = tenant
        application.status = ApplicationStatus.APPROVED
        application.reviewed_by = actor
        application.reviewed_at = now
        application.approved_by = actor
        application.approved_at = now
        application.expires_at = now + timedelta(hours=self.config.deposit_window_hours)
        application.admin_comments = comments or (
            "Your application has been approved! Please pay the booking deposit "
            f"within {self.config.deposit_window_hours} hours to reserve the property."
        )
        application.save()

        log_action(
            actor=actor,
            actor_type=ActorType.ADMIN,
            action=AuditLog.ACTION_APPROVE_APPLICATION,
            entity=AuditLog.ENTITY_APPLICATION,
            entity_id=application.id,
            before=before,
            after=application.snapshot(),
            description=f"Approved application of {application.applicant_name}",
            request=request,
        )

        for sibling in self.applications.pending_siblings(application).select_for_update():
            self._reject(sibling, "Another applicant was approved for this property.", actor,
                         ActorType.SYSTEM, now, request, action=AuditLog.ACTION_AUTO_REJECT_APPLICATION)

        for other in self.applications.other_pending_by_applicant(application).select_for_update():
            other_before = other.snapshot()
            other.status = ApplicationStatus.CANCELLED
            other.admin_comments = "Cancelled automatically after another application was approved."
            other.save()
            log_action(
                actor=actor,
                actor_type=ActorType.SYSTEM,
                action=AuditLog.ACTION_AUTO_CANCEL_APPLICATION,
                entity=AuditLog.ENTITY_APPLICATION,
                entity_id=other.id,
                before=other_before,
                after=other.snapshot(),
                description=f"Application #{application.id} was approved",
                request=request,
            )

        BillingService(config=self.config).create_booking_deposit_invoice(application, prop, now=now, actor=actor)

        self.log_info("Application approved", application_id=application.id, tenant_id=tenant.id)
        return application

    def _ensure_not_held(self, prop, exclude_id=None):
        """A property stays 'available' during the deposit window, so check its applications too"""
        holder = self.applications.holder_of_property(prop.id, exclude_id=exclude_id)
        if holder is not None:
            raise InvalidStateError(
                message="This property is already promised to another applicant.",
                code="PROPERTY_NOT_AVAILABLE",
                details={'property_id': prop.id, 'application_id': holder.id, 'status': holder.status}
            )

    def _tenant_for(self, application, actor, request):
        """Existing tenant for the applicant's email, or a new account"""
        tenant = application.tenant or self.tenants.get_by_email(application.applicant_email)
        if tenant is not None:
            return tenant

        tenant = self.tenants.create_from_application(application)
        submitter = application.submitted_by
        if submitter is not None and not hasattr(submitter, 'tenant_profile'):
            tenant.user = submitter
            tenant.save(update_fields=['user', 'updated_at'])
        log_action(
            actor=actor,
            actor_type=ActorType.ADMIN,
            action=AuditLog.ACTION_CREATE_TENANT,
            entity=AuditLog.ENTITY_TENANT,
            entity_id=tenant.id,
            after=tenant.snapshot(),
            description=f"Tenant {tenant.tenant_code} created on approval",
            request=request,
            metadata={'application_id': application.id},
        )
        return tenant

    def _reject(self, application, comments, actor, actor_type, now, request, action):
        before = application.snapshot()
        application.status = ApplicationStatus.REJECTED
        application.admin_comments = comments or ''
        application.reviewed_by = actor
        application.reviewed_at = now
        application.save()

        log_action(
            actor=actor,
            actor_type=actor_type,
            action=action,
            entity=AuditLog.ENTITY_APPLICATION,
            entity_id=application.id,
            before=before,
            after=application.snapshot(),
            description=comments or "Application rejected",
            request=request,
        )
        sink.notify_on_commit(
            Event.APPLICATION_REJECTED,
            tenant=application.tenant,
            email=application.applicant_email,
            context={
                'applicant_name': application.applicant_name,
                'property_name': application.property.name,
                'comments': comments,
            },
            metadata={'application_id': application.id},
        )

    # ------------------------------------------------------------------
    # Booking deposit
    # ------------------------------------------------------------------

    @transaction.atomic
    def confirm_booking_deposit(self, tenant_id, property_id, actor_type=ActorType.SYSTEM,
                                source='webhook', actor=None) -> DepositConfirmation:
        """
        Apply the "booking deposit paid" transition. Safe to call repeatedly.

        application approved -> reserved, property -> reserved for the tenant,
        tenant -> linked to property and application. An occupied property is
        never downgraded, and a property held by another tenant is left alone.
        """
        result = DepositConfirmation(tenant_id=tenant_id, property_id=property_id)
        tenant = self.tenants.get_for_update(tenant_id)
        prop = self.properties.get_for_update(property_id)

        application = self.applications.live_for(tenant, property_id)
        if application is None:
            self.log_warning("Deposit confirmed without a live application, lease state unchanged",
                             tenant_id=tenant_id, property_id=property_id, source=source)
            return result

        if prop.tenant_id not in (None, tenant.id):
            self.log_warning("Property held by another tenant, lease state unchanged",
                             tenant_id=tenant_id, property_id=property_id, holder_id=prop.tenant_id)
            return result
        result.application_id = application.id

        audit_meta = {'source': source, 'tenant_id': tenant.id, 'property_id': prop.id}

        if application.status != ApplicationStatus.RESERVED:
            before = application.snapshot()
            application.status = ApplicationStatus.RESERVED
            if application.tenant_id is None:
                application.tenant = tenant
            application.save()
            log_action(
                actor=actor, actor_type=actor_type,
                action=AuditLog.ACTION_RESERVE_APPLICATION,
                entity=AuditLog.ENTITY_APPLICATION, entity_id=application.id,
                before=before, after=application.snapshot(),
                description="Booking deposit received", metadata=audit_meta,
            )
            result.changes.append('application_reserved')

        if prop.status != PropertyStatus.OCCUPIED and (
                prop.status != PropertyStatus.RESERVED or prop.tenant_id != tenant.id):
            before = prop.snapshot()
            prop.status = PropertyStatus.RESERVED
            prop.tenant = tenant
            prop.save()
            log_action(
                actor=actor, actor_type=actor_type,
                action=AuditLog.ACTION_ASSIGN_PROPERTY,
                entity=AuditLog.ENTITY_PROPERTY, entity_id=prop.id,
                before=before, after=prop.snapshot(),
                description=f"Reserved for {tenant.tenant_code}", metadata=audit_meta,
            )
            result.changes.append('property_reserved')

        if tenant.property_id != prop.id or tenant.application_id != application.id:
            before = tenant.snapshot()
            tenant.property = prop
            tenant.application = application
            tenant.save()
            log_action(
                actor=actor, actor_type=actor_type,
                action=AuditLog.ACTION_LINK_TENANT,
                entity=AuditLog.ENTITY_TENANT, entity_id=tenant.id,
                before=before, after=tenant.snapshot(),
                description=f"Linked to {prop.name}", metadata=audit_meta,
            )
            result.changes.append('tenant_linked')

        if result.changed:
            self.log_info("Booking deposit confirmed", tenant_id=tenant_id, property_id=property_id,
                          source=source, changes=result.changes)
        return result

    # ------------------------------------------------------------------
    # Cancellation and release
    # ------------------------------------------------------------------

    @transaction.atomic
    def cancel(self, application_id, actor=None, actor_type=ActorType.TENANT, reason='', request=None) -> Application:
        """
        Cancel an application and release its property.

        Tenants may cancel pending/approved applications until the deposit is
        paid. Admins may also cancel reserved ones. Nothing is cancelled while
        the property is occupied, whoever the occupant is.
        """
        application = self.applications.get_for_update(application_id)
        if application.status == ApplicationStatus.CANCELLED:
            raise DuplicateOperationError(message="Application is already cancelled", code="ALREADY_CANCELLED")

        prop = self.properties.get_for_update(application.property_id)
        is_admin = actor_type == ActorType.ADMIN

        allowed = ApplicationStatus.OPEN + ([ApplicationStatus.RESERVED] if is_admin else [])
        if application.status not in allowed:
            raise InvalidStateError(
                message=f"Applications in status {application.status} cannot be cancelled.",
                code="CANNOT_CANCEL",
                details={'status': application.status}
            )

        if prop.status == PropertyStatus.OCCUPIED:
            raise InvalidStateError(
                message="The property is already occupied. End the tenancy instead.",
                code="PROPERTY_OCCUPIED"
            )

        if not is_admin and application.tenant_id and \
                self.payments.has_approved_deposit(application.tenant_id, application.property_id):
            raise InvalidStateError(
                message="The booking deposit has been paid. Please contact the property manager to cancel.",
                code="DEPOSIT_PAID"
            )

        before = application.snapshot()
        application.status = ApplicationStatus.CANCELLED
        if is_admin:
            application.admin_comments = reason or application.admin_comments
        application.save()

        log_action(
            actor=actor,
            actor_type=actor_type,
            action=AuditLog.ACTION_CANCEL_APPLICATION,
            entity=AuditLog.ENTITY_APPLICATION,
            entity_id=application.id,
            before=before,
            after=application.snapshot(),
            description=reason or "Application cancelled",
            request=request,
        )

        self._release(application, prop, actor, actor_type, request)

        if is_admin:
            sink.notify_on_commit(
                Event.APPLICATION_CANCELLED_BY_ADMIN,
                tenant=application.tenant,
                email=application.applicant_email,
                context={
                    'applicant_name': application.applicant_name,
                    'property_name': prop.name,
                    'reason': reason,
                },
                metadata={'application_id': application.id},
            )

        self.log_info("Application cancelled", application_id=application.id, actor_type=actor_type)
        return application

    def _release(self, application, prop, actor, actor_type, request=None) -> bool:
        """
        Make the property available again when this application held it.
        Occupied properties and properties held by another tenant are untouched.
        """
        released = False
        holds_property = prop.tenant_id is None or prop.tenant_id == application.tenant_id
        if prop.status != PropertyStatus.OCCUPIED and holds_property and (
                prop.status == PropertyStatus.RESERVED or prop.tenant_id is not None):
            before = prop.snapshot()
            prop.status = PropertyStatus.AVAILABLE
            prop.tenant = None
            prop.save()
            log_action(
                actor=actor,
                actor_type=actor_type,
                action=AuditLog.ACTION_RELEASE_PROPERTY,
                entity=AuditLog.ENTITY_PROPERTY,
                entity_id=prop.id,
                before=before,
                after=prop.snapshot(),
                description=f"Released after application #{application.id} ended",
                request=request,
            )
            released = True

        tenant = application.tenant
        if tenant is not None and tenant.property_id == prop.id:
            tenant.property = None
            if tenant.application_id == application.id:
                tenant.application = None
            tenant.save()

        return released

    # ------------------------------------------------------------------
    # Scheduled sweeps
    # ------------------------------------------------------------------

    def expire_overdue_applications(self, now=None) -> BatchResult:
        """Expire pending/approved applications past their deadline with nothing paid"""
        now = now or timezone.now()
        today = local_date(now)
        result = BatchResult()

        for application_id in list(self.applications.expiry_candidates(now, today).values_list('id', flat=True)):
            result.processed += 1
            try:
                expired = self._expire_one(application_id, now, today)
            except (DatabaseError, BaseApplicationException) as e:
                result.failed += 1
                result.note(f"Application #{application_id}: failed ({e})")
                self.log_error("Auto-expiry failed", error=e, application_id=application_id)
                continue

            if expired:
                result.created += 1
                result.note(f"Application #{application_id}: expired")
            else:
                result.skipped += 1

        self.log_info("Applications expired", expired=result.created, skipped=result.skipped,
                      failed=result.failed)
        return result

    @transaction.atomic
    def _expire_one(self, application_id, now, today) -> bool:
        application = self.applications.get_for_update(application_id)
        if application.status not in ApplicationStatus.OPEN:
            return False
        deadline_passed = application.expires_at is not None and application.expires_at < now
        if not deadline_passed and application.preferred_move_in >= today:
            return False
        if self.has_qualifying_payment(application):
            return False

        before = application.snapshot()
        application.status = ApplicationStatus.EXPIRED
        application.save()
        log_action(
            actor=None,
            actor_type=ActorType.SYSTEM,
            action=AuditLog.ACTION_EXPIRE_APPLICATION,
            entity=AuditLog.ENTITY_APPLICATION,
            entity_id=application.id,
            before=before,
            after=application.snapshot(),
            description="Payment deadline missed",
        )

        prop = Property.objects.select_for_update().filter(id=application.property_id).first()
        if prop is not None:
            self._release(application, prop, None, ActorType.SYSTEM)

        sink.notify_on_commit(
            Event.BOOKING_DEPOSIT_EXPIRED,
            tenant=application.tenant,
            email=application.applicant_email,
            context={
                'applicant_name': application.applicant_name,
                'property_name': prop.name if prop else '',
            },
            metadata={'application_id': application.id},
        )
        return True

    def send_expiry_warnings(self, now=None) -> BatchResult:
        """Warn once when a deposit deadline falls within the warning window"""
        now = now or timezone.now()
        window_end = now + timedelta(hours=self.config.expiry_warning_hours)
        result = BatchResult()

        for application in self.applications.expiring_between(now, window_end):
            result.processed += 1
            if self.has_qualifying_payment(application):
                result.skipped += 1
                continue

            deposit = self._deposit_due(application)
            notification = sink.notify(
                Event.BOOKING_DEPOSIT_EXPIRING,
                tenant=application.tenant,
                email=application.applicant_email,
                context={
                    'applicant_name': application.applicant_name,
                    'property_name': application.property.name,
                    'amount': deposit,
                    'deadline': format_deadline(application.expires_at),
                },
                metadata={'application_id': application.id},
            )
            if notification is None:
                result.failed += 1
                result.note(f"Application #{application.id}: warning not delivered")
                continue

            application.expiry_warning_sent_at = now
            application.save(update_fields=['expiry_warning_sent_at', 'updated_at'])
            result.created += 1
            result.note(f"Application #{application.id}: warned")

        self.log_info("Expiry warnings sent", sent=result.created, skipped=result.skipped,
                      failed=result.failed)
        return result

    def repair_deposit_state(self, today=None) -> BatchResult:
        """
        Re-apply the deposit transition for every paid booking deposit and
        make sure a first rent invoice exists. Safe to run any number of times.
        """
        today = today or timezone.localdate()
        billing = BillingService(config=self.config)
        result = BatchResult()

        deposits = self.invoices.get_all(
            invoice_type=InvoiceType.BOOKING_DEPOSIT,
            status=InvoiceStatus.PAID,
        ).select_related('tenant', 'property').order_by('id')

        for invoice in deposits:
            result.processed += 1
            if invoice.tenant is None or invoice.property is None:
                result.failed += 1
                result.note(f"Deposit invoice #{invoice.id}: missing tenant or property")
                continue

            try:
                confirmation = self.confirm_booking_deposit(
                    invoice.tenant_id, invoice.property_id,
                    actor_type=ActorType.SYSTEM, source='fix_lease_state',
                )
                rent_invoice = None
                has_rent = self.invoices.exists(tenant_id=invoice.tenant_id, property_id=invoice.property_id,
                                                invoice_type__in=InvoiceType.RENT_TYPES)
                if confirmation.application_id and not has_rent:
                    rent_invoice = billing.create_first_rent_invoice(invoice.tenant, invoice.property, today=today)
            except DuplicateOperationError:
                rent_invoice = None
            except (DatabaseError, BaseApplicationException) as e:
                result.failed += 1
                result.note(f"Deposit invoice #{invoice.id}: failed ({e})")
                self.log_error("Lease state repair failed", error=e, invoice_id=invoice.id)
                continue

            changes = list(confirmation.changes)
            if rent_invoice is not None:
                changes.append('rent_invoice_created')
            if changes:
                result.created += 1
                result.note(f"Deposit invoice #{invoice.id}: {', '.join(changes)}")
            else:
                result.skipped += 1

        self.log_info("Lease state repaired", fixed=result.created, unchanged=result.skipped,
                      failed=result.failed)
        return result

    def _deposit_due(self, application) -> Optional[str]:
        if application.tenant_id:
            invoice = self.invoices.unpaid_booking_deposit(application.tenant_id, application.property_id)
            if invoice:
                return str(invoice.outstanding_balance)
        return str(application.property.effective_booking_deposit(self.config.min_booking_deposit_fraction))

