"""
Test utilities and factories for creating test data
"""
import datetime
import random
import string

from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from assisthub.core.models import User, Role
from assisthub.clients.models import Client
from assisthub.events.models import CalendarEvent, EventType
from assisthub.notifications.models import Notification
from assisthub.projects.models import Project
from assisthub.tags.models import Tag
from assisthub.teams.models import Team


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=Role.TECNICO,
                    first_name='', last_name='', is_superuser=False):
        """Create a test user with the given role"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name,
            is_superuser=is_superuser,
        )

    @staticmethod
    def create_supervisor(**kwargs):
        return TestDataFactory.create_user(role=Role.SUPERVISOR, **kwargs)

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=Role.AMMINISTRATORE, **kwargs)

    @staticmethod
    def create_tag(name=None, category='PROJECT', usage_count=0, created_by=None):
        """Create a tag row directly. Names are stored uppercase."""
        if not name:
            name = f'TAG_{TestDataFactory.random_string(6)}'
        return Tag.objects.create(
            name=name.strip().upper(),
            category=category,
            usage_count=usage_count,
            created_by=created_by,
        )

    @staticmethod
    def create_team(name=None, members=None, tags=None):
        if not name:
            name = f'Team_{TestDataFactory.random_string(6)}'
        team = Team.objects.create(name=name, tags=tags or [])
        if members:
            team.members.set(members)
        return team

    @staticmethod
    def create_client(company_name=None, address='Via Roma 1, Milano', tags=None,
                      awaiting_admin_approval=False, created_by=None):
        if not company_name:
            company_name = f'Client_{TestDataFactory.random_string(6)}'
        return Client.objects.create(
            company_name=company_name,
            contact_person='Mario Rossi',
            address=address,
            phone_mobile='+39 333 1234567',
            tags=tags or [],
            awaiting_admin_approval=awaiting_admin_approval,
            created_by=created_by,
        )

    @staticmethod
    def create_project(name=None, clients=None, status='Non Iniziato', priority='Media',
                       tags=None, team_members=None):
        """Create a test project; a client is created when none is given"""
        if not name:
            name = f'Project_{TestDataFactory.random_string(6)}'
        project = Project.objects.create(name=name, status=status, priority=priority, tags=tags or [])
        project.clients.set(clients or [TestDataFactory.create_client()])
        if team_members:
            project.team_members.set(team_members)
        return project

    @staticmethod
    def create_event(user, title=None, start=None, end=None, type=EventType.PERSONAL, **kwargs):
        if not title:
            title = f'Event_{TestDataFactory.random_string(6)}'
        if start is None:
            start = timezone.now() + datetime.timedelta(days=1)
        if end is None:
            end = start + datetime.timedelta(hours=1)
        return CalendarEvent.objects.create(user=user, title=title, start=start, end=end, type=type, **kwargs)

    @staticmethod
    def create_notification(title=None, message='Test message', target_user=None, read=False):
        if not title:
            title = f'Notification_{TestDataFactory.random_string(6)}'
        return Notification.objects.create(title=title, message=message, target_user=target_user, read=read)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
