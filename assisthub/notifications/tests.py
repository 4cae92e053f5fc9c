"""
Test suite for notifications
"""
from django.test import TestCase
from rest_framework import status

from assisthub.core.models import Role
from assisthub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from . import services
from .models import Notification


class NotificationServiceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()

    def test_visible_includes_broadcast_and_own(self):
        broadcast = TestDataFactory.create_notification(title='Tutti')
        own = TestDataFactory.create_notification(title='Mia', target_user=self.user)
        TestDataFactory.create_notification(title='Altrui', target_user=self.other)

        visible = set(services.get_notifications(self.user).values_list('pk', flat=True))
        self.assertEqual(visible, {broadcast.pk, own.pk})

    def test_read_filter(self):
        TestDataFactory.create_notification(target_user=self.user, read=True)
        unread = TestDataFactory.create_notification(target_user=self.user)
        self.assertEqual(list(services.get_notifications(self.user, read=False)), [unread])

    def test_mark_all_as_read(self):
        TestDataFactory.create_notification(target_user=self.user)
        TestDataFactory.create_notification(target_user=self.user)
        untouched = TestDataFactory.create_notification(target_user=self.other)

        self.assertEqual(services.mark_all_notifications_as_read(self.user), 2)
        self.assertEqual(services.get_notifications(self.user, read=False).count(), 0)
        untouched.refresh_from_db()
        self.assertFalse(untouched.read)

    def test_mark_all_as_read_leaves_broadcasts_for_other_users(self):
        broadcast = TestDataFactory.create_notification(title='Tutti')
        TestDataFactory.create_notification(target_user=self.user)

        self.assertEqual(services.mark_all_notifications_as_read(self.user), 1)
        broadcast.refresh_from_db()
        self.assertFalse(broadcast.read)
        self.assertEqual(services.get_notifications(self.other, read=False).count(), 1)

    def test_notify_role_includes_superusers_for_admins(self):
        admin = TestDataFactory.create_admin()
        superuser = TestDataFactory.create_user(is_superuser=True)
        TestDataFactory.create_supervisor()

        created = services.notify_role(Role.AMMINISTRATORE, 'Titolo', 'Messaggio')
        self.assertEqual({n.target_user_id for n in created}, {admin.pk, superuser.pk})


class NotificationAPITests(TestCase):
    """Test notification endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_newest_first(self):
        first = TestDataFactory.create_notification(title='Prima', target_user=self.user)
        second = TestDataFactory.create_notification(title='Seconda', target_user=self.user)
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([n['id'] for n in response.data], [second.pk, first.pk])

    def test_list_read_filter(self):
        TestDataFactory.create_notification(target_user=self.user, read=True)
        response = self.client.get('/api/v1/notifications/?read=false')
        self.assertEqual(response.data, [])

    def test_mark_read(self):
        notification = TestDataFactory.create_notification(target_user=self.user)
        response = self.client.post(f'/api/v1/notifications/{notification.pk}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['read'])

    def test_mark_all_read_and_count(self):
        TestDataFactory.create_notification(target_user=self.user)
        TestDataFactory.create_notification(target_user=self.user)
        self.assertEqual(self.client.get('/api/v1/notifications/unread-count/').data['unread'], 2)
        response = self.client.post('/api/v1/notifications/mark-all-read/')
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(self.client.get('/api/v1/notifications/unread-count/').data['unread'], 0)

    def test_cannot_see_other_users_notification(self):
        other = TestDataFactory.create_user()
        notification = TestDataFactory.create_notification(target_user=other)
        response = self.client.get(f'/api/v1/notifications/{notification.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_own(self):
        notification = TestDataFactory.create_notification(target_user=self.user)
        response = self.client.delete(f'/api/v1/notifications/{notification.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Notification.objects.filter(pk=notification.pk).exists())

    def test_create_requires_manager(self):
        payload = {'title': 'Avviso', 'message': 'Manutenzione server'}
        response = self.client.post('/api/v1/notifications/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_supervisor())
        response = self.client.post('/api/v1/notifications/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['target_user'])
