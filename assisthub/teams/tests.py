"""
Test suite for teams
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from assisthub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from assisthub.tags.models import Tag
from .models import Team


class TeamAPITests(TestCase):
    """Test team endpoints"""

    def setUp(self):
        cache.clear()
        self.supervisor = TestDataFactory.create_supervisor()
        self.technician = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.supervisor)
        self.tag = TestDataFactory.create_tag('REPERIBILE', 'TEAM')

    def test_create_team_with_members_and_tags(self):
        response = self.client.post('/api/v1/teams/', {
            'name': 'Squadra Nord',
            'member_ids': [self.technician.pk],
            'tags': ['reperibile'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['tags'], ['REPERIBILE'])
        self.assertEqual([m['id'] for m in response.data['members']], [self.technician.pk])
        self.tag.refresh_from_db()
        self.assertEqual(self.tag.usage_count, 1)

    def test_unknown_tag_rolls_back_team(self):
        response = self.client.post('/api/v1/teams/', {'name': 'Squadra Sud', 'tags': ['NOPE']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'UnknownTag')
        self.assertFalse(Team.objects.filter(name='Squadra Sud').exists())

    def test_name_too_short(self):
        response = self.client.post('/api/v1/teams/', {'name': 'ab'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_tags_keeps_counter(self):
        team = TestDataFactory.create_team()
        self.client.patch(f'/api/v1/teams/{team.pk}/', {'tags': ['REPERIBILE']}, format='json')
        self.tag.refresh_from_db()
        self.assertEqual(self.tag.usage_count, 1)

        response = self.client.patch(f'/api/v1/teams/{team.pk}/', {'tags': []}, format='json')
        self.assertEqual(response.data['tags'], [])
        self.tag.refresh_from_db()
        self.assertEqual(self.tag.usage_count, 0)

    def test_delete_releases_tags(self):
        team = TestDataFactory.create_team()
        self.client.patch(f'/api/v1/teams/{team.pk}/', {'tags': ['REPERIBILE']}, format='json')

        response = self.client.delete(f'/api/v1/teams/{team.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(Tag.objects.get(pk=self.tag.pk).usage_count, 0)

    def test_technician_read_only(self):
        team = TestDataFactory.create_team(name='Squadra Est')
        self.client.authenticate_user(self.technician)
        self.assertEqual(self.client.get('/api/v1/teams/').status_code, status.HTTP_200_OK)
        response = self.client.patch(f'/api/v1/teams/{team.pk}/', {'name': 'Altro nome'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_filter_by_member(self):
        TestDataFactory.create_team(name='Con membro', members=[self.technician])
        TestDataFactory.create_team(name='Senza membro')
        response = self.client.get(f'/api/v1/teams/?member={self.technician.pk}')
        self.assertEqual([t['name'] for t in response.data], ['Con membro'])
