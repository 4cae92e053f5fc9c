"""
Test suite for clients
Tests: CRUD, approval workflow, geolocation, filters
"""
from unittest import mock

import requests
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status

from assisthub.core.models import AuditLog
from assisthub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from assisthub.notifications.models import Notification
from .geolocation import get_geolocation, GeolocationError, Location
from .models import Client


def _mock_response(payload, status_code=200):
    response = mock.Mock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f'{status_code} error')
    else:
        response.raise_for_status.return_value = None
    return response


@override_settings(GEOCODING_URL='https://geo.example.test/search', GEOCODING_TIMEOUT=3,
                   GEOCODING_USER_AGENT='assisthub-tests')
class GeolocationTests(TestCase):

    @mock.patch('assisthub.clients.geolocation.requests.get')
    def test_resolves_first_result(self, mock_get):
        mock_get.return_value = _mock_response([{'lat': '45.4642', 'lon': '9.19'}])

        location = get_geolocation('Piazza del Duomo, Milano')

        self.assertEqual(location, Location(lat=45.4642, lng=9.19))
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], 'https://geo.example.test/search')
        self.assertEqual(kwargs['params']['q'], 'Piazza del Duomo, Milano')
        self.assertEqual(kwargs['timeout'], 3)
        self.assertEqual(kwargs['headers']['User-Agent'], 'assisthub-tests')

    @mock.patch('assisthub.clients.geolocation.requests.get')
    def test_no_results(self, mock_get):
        mock_get.return_value = _mock_response([])
        with self.assertRaises(GeolocationError):
            get_geolocation('Nowhere')

    @mock.patch('assisthub.clients.geolocation.requests.get')
    def test_http_error(self, mock_get):
        mock_get.return_value = _mock_response({}, status_code=503)
        with self.assertRaises(GeolocationError):
            get_geolocation('Via Roma 1')

    @mock.patch('assisthub.clients.geolocation.requests.get')
    def test_connection_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('unreachable')
        with self.assertRaises(GeolocationError):
            get_geolocation('Via Roma 1')

    def test_empty_address(self):
        with self.assertRaises(GeolocationError):
            get_geolocation('   ')


class ClientAPITests(TestCase):
    """Test client endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.supervisor = TestDataFactory.create_supervisor()
        self.technician = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.supervisor)

    def test_supervisor_creates_approved_client(self):
        response = self.client.post('/api/v1/clients/', {'company_name': 'Rossi Srl'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['awaiting_admin_approval'])
        self.assertEqual(Notification.objects.count(), 0)

    def test_technician_client_awaits_approval_and_notifies_admins(self):
        self.client.authenticate_user(self.technician)
        response = self.client.post('/api/v1/clients/', {'company_name': 'Bianchi Spa'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['awaiting_admin_approval'])

        notification = Notification.objects.get()
        self.assertEqual(notification.target_user, self.admin)
        self.assertIn('Bianchi Spa', notification.message)

    def test_approve_requires_admin(self):
        client = TestDataFactory.create_client(awaiting_admin_approval=True)
        response = self.client.post(f'/api/v1/clients/{client.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/clients/{client.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['awaiting_admin_approval'])
        self.assertEqual(response.data['approved_by'], self.admin.pk)
        self.assertTrue(AuditLog.objects.filter(action='client_approve', object_id=str(client.pk)).exists())

    def test_approve_already_approved(self):
        client = TestDataFactory.create_client()
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/clients/{client.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_technician_cannot_edit(self):
        client = TestDataFactory.create_client()
        self.client.authenticate_user(self.technician)
        response = self.client.patch(f'/api/v1/clients/{client.pk}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_phone(self):
        response = self.client.post('/api/v1/clients/', {
            'company_name': 'Verdi Snc', 'phone_mobile': 'call me'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone_mobile', response.data)

    def test_filters(self):
        TestDataFactory.create_client(company_name='Alfa Impianti', awaiting_admin_approval=True)
        TestDataFactory.create_client(company_name='Beta Costruzioni')

        response = self.client.get('/api/v1/clients/?awaiting_approval=true')
        self.assertEqual([c['company_name'] for c in response.data], ['Alfa Impianti'])

        response = self.client.get('/api/v1/clients/?search=costruz')
        self.assertEqual([c['company_name'] for c in response.data], ['Beta Costruzioni'])

    def test_tags_and_delete_release(self):
        tag = TestDataFactory.create_tag('VIP', 'CLIENT')
        response = self.client.post('/api/v1/clients/', {'company_name': 'Gamma Srl', 'tags': ['vip']}, format='json')
        self.assertEqual(response.data['tags'], ['VIP'])
        tag.refresh_from_db()
        self.assertEqual(tag.usage_count, 1)

        response = self.client.get('/api/v1/clients/?tag=vip')
        self.assertEqual([c['company_name'] for c in response.data], ['Gamma Srl'])

        self.client.delete(f"/api/v1/clients/{response.data[0]['id']}/")
        tag.refresh_from_db()
        self.assertEqual(tag.usage_count, 0)
        self.assertFalse(Client.objects.filter(company_name='Gamma Srl').exists())

    @mock.patch('assisthub.clients.views.get_geolocation')
    def test_geolocate_updates_link(self, mock_geo):
        mock_geo.return_value = Location(lat=45.0, lng=9.0)
        client = TestDataFactory.create_client()

        response = self.client.post(f'/api/v1/clients/{client.pk}/geolocate/', {'update_link': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['lat'], 45.0)
        mock_geo.assert_called_once_with(client.address)
        client.refresh_from_db()
        self.assertIn('45.0,9.0', client.geolocation_link)

    @mock.patch('assisthub.clients.views.get_geolocation')
    def test_geolocate_failure(self, mock_geo):
        mock_geo.side_effect = GeolocationError('No location found')
        client = TestDataFactory.create_client()
        response = self.client.post(f'/api/v1/clients/{client.pk}/geolocate/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['error'], 'GeolocationError')

    @mock.patch('assisthub.clients.views.get_geolocation')
    def test_technician_update_link_rejected_before_lookup(self, mock_geo):
        client = TestDataFactory.create_client()
        self.client.authenticate_user(self.technician)
        response = self.client.post(f'/api/v1/clients/{client.pk}/geolocate/', {'update_link': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        mock_geo.assert_not_called()
