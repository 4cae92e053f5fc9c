"""
Test suite for calendar events
"""
import datetime

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from assisthub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .services import get_calendar_events, parse_range_bound


def _at(day, hour=9):
    return timezone.make_aware(datetime.datetime(2026, 3, day, hour, 0))


class CalendarServiceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_range_and_order(self):
        late = TestDataFactory.create_event(self.user, title='Tardi', start=_at(20), end=_at(20, 10))
        early = TestDataFactory.create_event(self.user, title='Presto', start=_at(10), end=_at(10, 10))
        TestDataFactory.create_event(self.user, title='Fuori', start=_at(28), end=_at(28, 10))
        TestDataFactory.create_event(TestDataFactory.create_user(), title='Altrui', start=_at(12), end=_at(12, 10))

        events = list(get_calendar_events(self.user, start=_at(1, 0), end=_at(25, 0)))
        self.assertEqual(events, [early, late])

    def test_event_ending_after_range_excluded(self):
        TestDataFactory.create_event(self.user, start=_at(10), end=_at(12))
        self.assertEqual(list(get_calendar_events(self.user, end=_at(11))), [])

    def test_parse_date_bounds(self):
        start = parse_range_bound('2026-03-10')
        end = parse_range_bound('2026-03-10', end_of_day=True)
        self.assertEqual(start.hour, 0)
        self.assertEqual(end.hour, 23)
        self.assertTrue(timezone.is_aware(start))

    def test_parse_datetime_kept_as_given(self):
        parsed = parse_range_bound('2026-03-10T14:30:00', end_of_day=True)
        self.assertEqual((parsed.hour, parsed.minute), (14, 30))

    def test_bare_end_date_includes_that_day(self):
        last_day = TestDataFactory.create_event(self.user, start=_at(10, 15), end=_at(10, 17))
        end = parse_range_bound('2026-03-10', end_of_day=True)
        self.assertEqual(list(get_calendar_events(self.user, end=end)), [last_day])

    def test_parse_invalid(self):
        with self.assertRaises(ValueError):
            parse_range_bound('yesterday')


class CalendarEventAPITests(TestCase):
    """Test calendar event endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_sets_owner(self):
        response = self.client.post('/api/v1/events/', {
            'title': 'Sopralluogo',
            'start': '2026-03-10T09:00:00+01:00',
            'end': '2026-03-10T11:00:00+01:00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], self.user.pk)
        self.assertEqual(response.data['type'], 'personal')

    def test_end_before_start(self):
        response = self.client.post('/api/v1/events/', {
            'title': 'Rovesciato',
            'start': '2026-03-10T11:00:00+01:00',
            'end': '2026-03-10T09:00:00+01:00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end', response.data)

    def test_project_event_requires_project(self):
        response = self.client.post('/api/v1/events/', {
            'title': 'Consegna',
            'start': '2026-03-10T09:00:00+01:00',
            'end': '2026-03-10T10:00:00+01:00',
            'type': 'project',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('project', response.data)

    def test_owner_is_immutable(self):
        event = TestDataFactory.create_event(self.user)
        other = TestDataFactory.create_user()
        response = self.client.patch(f'/api/v1/events/{event.pk}/', {'user': other.pk, 'title': 'Nuovo titolo'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        event.refresh_from_db()
        self.assertEqual(event.user, self.user)
        self.assertEqual(event.title, 'Nuovo titolo')

    def test_list_with_range(self):
        TestDataFactory.create_event(self.user, title='Marzo', start=_at(10), end=_at(10, 10))
        TestDataFactory.create_event(self.user, title='Aprile', start=_at(10) + datetime.timedelta(days=30),
                                     end=_at(10, 10) + datetime.timedelta(days=30))
        response = self.client.get('/api/v1/events/?start=2026-03-01&end=2026-03-31')
        self.assertEqual([e['title'] for e in response.data], ['Marzo'])

    def test_list_end_date_includes_final_day(self):
        TestDataFactory.create_event(self.user, title='Ultimo giorno', start=_at(31, 16), end=_at(31, 18))
        response = self.client.get('/api/v1/events/?start=2026-03-01&end=2026-03-31')
        self.assertEqual([e['title'] for e in response.data], ['Ultimo giorno'])

    def test_invalid_range(self):
        response = self.client.get('/api/v1/events/?start=soon')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_users_event_forbidden(self):
        event = TestDataFactory.create_event(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/events/{event.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_sees_other_calendar(self):
        TestDataFactory.create_event(self.user, title='Mio evento')
        self.client.authenticate_user(TestDataFactory.create_supervisor())
        response = self.client.get(f'/api/v1/events/?user={self.user.pk}')
        self.assertEqual([e['title'] for e in response.data], ['Mio evento'])

    def test_delete(self):
        event = TestDataFactory.create_event(self.user)
        response = self.client.delete(f'/api/v1/events/{event.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
