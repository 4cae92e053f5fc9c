"""
Test suite for projects
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from assisthub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from assisthub.tags.models import Tag


class ProjectAPITests(TestCase):
    """Test project endpoints"""

    def setUp(self):
        cache.clear()
        self.supervisor = TestDataFactory.create_supervisor()
        self.technician = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.supervisor)
        self.customer = TestDataFactory.create_client(company_name='Rossi Srl')

    def test_create_project(self):
        TestDataFactory.create_tag('URGENTE', 'PROJECT')
        response = self.client.post('/api/v1/projects/', {
            'name': 'Impianto fotovoltaico',
            'client_ids': [self.customer.pk],
            'team_member_ids': [self.technician.pk],
            'status': 'In Corso',
            'priority': 'Alta',
            'due_date': '2026-12-31',
            'tags': ['URGENTE'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['clients'], [{'id': self.customer.pk, 'company_name': 'Rossi Srl'}])
        self.assertEqual(response.data['tags'], ['URGENTE'])
        self.assertEqual(Tag.objects.get(name='URGENTE').usage_count, 1)

    def test_project_needs_a_client(self):
        response = self.client.post('/api/v1/projects/', {'name': 'Senza cliente', 'client_ids': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('client_ids', response.data)

    def test_invalid_status(self):
        response = self.client.post('/api/v1/projects/', {
            'name': 'Stato errato', 'client_ids': [self.customer.pk], 'status': 'Finito'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filters(self):
        other = TestDataFactory.create_client(company_name='Bianchi Spa')
        TestDataFactory.create_project(name='Alpha', status='In Corso', priority='Alta', clients=[self.customer])
        TestDataFactory.create_project(name='Beta', status='Completato', priority='Bassa', clients=[other])

        response = self.client.get('/api/v1/projects/?status=In%20Corso')
        self.assertEqual([p['name'] for p in response.data], ['Alpha'])

        response = self.client.get('/api/v1/projects/?priority=Bassa')
        self.assertEqual([p['name'] for p in response.data], ['Beta'])

        response = self.client.get(f'/api/v1/projects/?client={other.pk}')
        self.assertEqual([p['name'] for p in response.data], ['Beta'])

        response = self.client.get('/api/v1/projects/?search=rossi')
        self.assertEqual([p['name'] for p in response.data], ['Alpha'])

    def test_invalid_filter_value(self):
        response = self.client.get('/api/v1/projects/?status=Boh')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_technician_can_create_but_not_edit(self):
        self.client.authenticate_user(self.technician)
        response = self.client.post('/api/v1/projects/', {
            'name': 'Sopralluogo', 'client_ids': [self.customer.pk]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.patch(f"/api/v1/projects/{response.data['id']}/", {'status': 'In Corso'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_releases_tags(self):
        tag = TestDataFactory.create_tag('URGENTE', 'PROJECT')
        project = TestDataFactory.create_project(clients=[self.customer])
        self.client.patch(f'/api/v1/projects/{project.pk}/', {'tags': ['URGENTE']}, format='json')
        tag.refresh_from_db()
        self.assertEqual(tag.usage_count, 1)

        response = self.client.delete(f'/api/v1/projects/{project.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        tag.refresh_from_db()
        self.assertEqual(tag.usage_count, 0)
