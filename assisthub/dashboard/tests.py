"""
Test suite for the dashboard summary
"""
import datetime

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from assisthub.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class DashboardTests(TestCase):
    """Test dashboard endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_summary(self):
        TestDataFactory.create_project(status='In Corso')
        TestDataFactory.create_project(status='In Corso')
        TestDataFactory.create_project(status='Completato')
        TestDataFactory.create_client(awaiting_admin_approval=True)
        TestDataFactory.create_notification(target_user=self.user)
        TestDataFactory.create_notification(target_user=self.user, read=True)
        TestDataFactory.create_event(self.user, title='Domani')
        TestDataFactory.create_event(self.user, title='Ieri', start=timezone.now() - datetime.timedelta(days=1))

        response = self.client.get('/api/v1/dashboard/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['projects_total'], 3)
        self.assertEqual(response.data['projects_by_status']['In Corso'], 2)
        self.assertEqual(response.data['projects_by_status']['Annullato'], 0)
        self.assertEqual(response.data['clients_awaiting_approval'], 1)
        self.assertEqual(response.data['unread_notifications'], 1)
        self.assertEqual([e['title'] for e in response.data['upcoming_events']], ['Domani'])

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/dashboard/summary/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
