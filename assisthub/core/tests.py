"""
Test suite for core
Tests: authentication, users and roles, navigation, audit log
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIRequestFactory
from rest_framework_simplejwt.tokens import AccessToken

from assisthub.tags.models import Tag
from .models import AuditLog, Role, User
from .navigation import get_navigation
from .permissions import is_manager, is_admin_user
from .test_utils import TestDataFactory, AuthenticatedAPIClient
from .utils import create_audit_log, get_client_ip


class RoleTests(TestCase):

    def test_superuser_acts_as_admin(self):
        user = TestDataFactory.create_user(is_superuser=True)
        self.assertEqual(user.effective_role, Role.AMMINISTRATORE)
        self.assertTrue(is_admin_user(user))

    def test_manager_roles(self):
        self.assertTrue(is_manager(TestDataFactory.create_supervisor()))
        self.assertFalse(is_manager(TestDataFactory.create_user()))

    def test_navigation_by_role(self):
        titles = [item['title'] for item in get_navigation(Role.TECNICO)]
        self.assertNotIn('Utenti', titles)
        self.assertNotIn('File', titles)
        self.assertIn('Calendario', titles)
        self.assertIn('File', [item['title'] for item in get_navigation(Role.AMMINISTRATORE)])
        self.assertNotIn('File', [item['title'] for item in get_navigation(Role.SUPERVISOR)])


class AuthTests(TestCase):
    """Test authentication endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_supervisor(username='mario', password='Segreta.123')
        self.client = AuthenticatedAPIClient()

    def test_login_token_carries_role(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'mario', 'password': 'Segreta.123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        token = AccessToken(response.data['access'])
        self.assertEqual(token['username'], 'mario')
        self.assertEqual(token['role'], Role.SUPERVISOR)

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'mario', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'mario', 'password': 'Segreta.123'}, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_includes_navigation(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], Role.SUPERVISOR)
        self.assertTrue(response.data['is_manager'])
        self.assertIn({'title': 'Utenti', 'href': '/users'}, response.data['navigation'])

    def test_profile_update_cannot_change_role(self):
        self.client.authenticate_user(self.user)
        response = self.client.patch('/api/v1/auth/me/', {'phone': '+39 02 123456', 'role': 'AMMINISTRATORE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.phone, '+39 02 123456')
        self.assertEqual(self.user.role, Role.SUPERVISOR)

    def test_change_password(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/auth/change-password/', {
            'old_password': 'Segreta.123', 'new_password': 'Nuova.Password.456'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Nuova.Password.456'))

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserAPITests(TestCase):
    """Test user endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.supervisor = TestDataFactory.create_supervisor()
        self.technician = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.supervisor)

    def _payload(self, **overrides):
        payload = {
            'username': 'nuovo',
            'email': 'nuovo@test.com',
            'password': 'Password.Forte.1',
            'password_confirm': 'Password.Forte.1',
            'first_name': 'Nuovo',
            'last_name': 'Tecnico',
        }
        payload.update(overrides)
        return payload

    def test_create_user_with_tags(self):
        tag = TestDataFactory.create_tag('ELETTRICISTA', 'USER')
        response = self.client.post('/api/v1/users/', self._payload(tags=['elettricista']), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], Role.TECNICO)
        self.assertEqual(response.data['tags'], ['ELETTRICISTA'])
        self.assertEqual(response.data['created_by'], self.supervisor.pk)
        tag.refresh_from_db()
        self.assertEqual(tag.usage_count, 1)

    def test_password_mismatch(self):
        response = self.client.post('/api/v1/users/', self._payload(password_confirm='Altro.1234'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supervisor_cannot_create_admin(self):
        response = self.client.post('/api/v1/users/', self._payload(role='AMMINISTRATORE'), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(User.objects.filter(username='nuovo').exists())

    def test_supervisor_cannot_edit_admin(self):
        response = self.client.patch(f'/api/v1/users/{self.admin.pk}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_changes_role(self):
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/users/{self.technician.pk}/', {'role': 'SUPERVISOR'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], Role.SUPERVISOR)
        self.assertTrue(AuditLog.objects.filter(model_name='User', action='update').exists())

    def test_technician_cannot_list(self):
        self.client.authenticate_user(self.technician)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filtered_by_role(self):
        response = self.client.get('/api/v1/users/?role=TECNICO')
        self.assertEqual([u['id'] for u in response.data], [self.technician.pk])

    def test_delete_releases_tags(self):
        tag = TestDataFactory.create_tag('ELETTRICISTA', 'USER')
        self.client.patch(f'/api/v1/users/{self.technician.pk}/', {'tags': ['ELETTRICISTA']}, format='json')
        tag.refresh_from_db()
        self.assertEqual(tag.usage_count, 1)

        response = self.client.delete(f'/api/v1/users/{self.technician.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(Tag.objects.get(pk=tag.pk).usage_count, 0)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.supervisor.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AuditLogTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.user = TestDataFactory.create_user()

    def test_create_audit_log_with_request(self):
        request = APIRequestFactory().post('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2')
        request.user = self.user
        log = create_audit_log(request=request, action='create', model_name='Tag', object_id=5, object_name='URGENTE')
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.ip_address, '10.0.0.1')
        self.assertEqual(log.object_id, '5')

    def test_missing_fields_skipped(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Tag'))

    def test_get_client_ip_without_request(self):
        self.assertIsNone(get_client_ip(None))

    def test_non_admin_sees_only_own_entries(self):
        create_audit_log(user=self.user, action='create', model_name='Client', object_id=1)
        create_audit_log(user=self.admin, action='delete', model_name='Client', object_id=2)
        client = AuthenticatedAPIClient()

        client.authenticate_user(self.user)
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual([log['object_id'] for log in response.data], ['1'])

        client.authenticate_user(self.admin)
        response = client.get('/api/v1/audit-logs/?action=delete')
        self.assertEqual([log['object_id'] for log in response.data], ['2'])
