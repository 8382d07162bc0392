from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from core.constants import PropertyStatus
from core.testing import make_admin, make_property, make_tenant, make_user, occupied_property
from .models import Property


class PropertyModelTests(TestCase):

    def test_monthly_charges(self):
        self.assertEqual(make_property().monthly_charges, Decimal('15500.00'))

    def test_new_property_is_available(self):
        prop = make_property()
        self.assertEqual(prop.status, PropertyStatus.AVAILABLE)
        self.assertIsNone(prop.tenant)


class PropertyEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.available = make_property(name='Lakeview 2BHK')
        occupied_property(make_tenant(), name='Hilltop 1BHK')

    def test_renters_only_see_available_properties(self):
        self.client.force_authenticate(make_user())
        response = self.client.get('/api/properties/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], self.available.id)

    def test_admin_sees_all_and_filters_by_status(self):
        self.client.force_authenticate(make_admin())
        self.assertEqual(self.client.get('/api/properties/').data['count'], 2)
        response = self.client.get('/api/properties/', {'status': PropertyStatus.OCCUPIED})
        self.assertEqual(response.data['count'], 1)

    def test_search(self):
        self.client.force_authenticate(make_admin())
        response = self.client.get('/api/properties/', {'search': 'hilltop'})
        self.assertEqual(response.data['count'], 1)

    def test_admin_creates_property(self):
        self.client.force_authenticate(make_admin())
        response = self.client.post('/api/properties/', {
            'name': 'Riverside Studio', 'address': '4 River Lane', 'city': 'Pune',
            'rent': '9000.00', 'maintenance_fee': '0.00', 'status': PropertyStatus.OCCUPIED,
        }, format='json')
        self.assertEqual(response.status_code, 201)
        prop = Property.objects.get(name='Riverside Studio')
        self.assertEqual(prop.status, PropertyStatus.AVAILABLE)

    def test_renter_cannot_create(self):
        self.client.force_authenticate(make_user())
        response = self.client.post('/api/properties/', {'name': 'X', 'address': 'Y', 'rent': '1.00'},
                                    format='json')
        self.assertEqual(response.status_code, 403)
