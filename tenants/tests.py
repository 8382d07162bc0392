from django.test import TestCase

from core.constants import TenantStatus
from core.testing import make_application, make_property, make_tenant
from .repositories import TenantRepository


class TenantRepositoryTests(TestCase):

    def setUp(self):
        self.repo = TenantRepository()

    def test_codes_skip_taken_numbers(self):
        make_tenant(code='TEN00002')
        self.assertEqual(self.repo.next_tenant_code(), 'TEN00003')

    def test_email_lookup_ignores_case(self):
        tenant = make_tenant(email='asha@example.com')
        self.assertEqual(self.repo.get_by_email(' Asha@Example.com '), tenant)
        self.assertIsNone(self.repo.get_by_email(''))

    def test_create_from_application(self):
        application = make_application(make_property(), email='Ravi.K@Example.com',
                                       applicant_name='Ravi Kumar Shetty', phone='9800000000')
        tenant = self.repo.create_from_application(application)
        self.assertEqual(tenant.tenant_code, 'TEN00001')
        self.assertEqual(tenant.first_name, 'Ravi')
        self.assertEqual(tenant.last_name, 'Kumar Shetty')
        self.assertEqual(tenant.email, 'ravi.k@example.com')
        self.assertEqual(tenant.status, TenantStatus.ACTIVE)

    def test_single_word_name(self):
        application = make_application(make_property(), applicant_name='Madhu')
        tenant = self.repo.create_from_application(application)
        self.assertEqual(tenant.full_name, 'Madhu Madhu')
