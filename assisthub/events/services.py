import datetime

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .models import CalendarEvent


def parse_range_bound(value, end_of_day=False):
    """
    Parse an ISO date or datetime query value into an aware datetime.
    A bare date means its start (or its end, with ``end_of_day``). Returns None for empty values.
    """
    if not value:
        return None
    day = parse_date(value)
    if day is not None:
        parsed = datetime.datetime.combine(day, datetime.time.max if end_of_day else datetime.time.min)
    else:
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValueError(f"Invalid date: {value}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def get_calendar_events(user, start=None, end=None):
    """Events owned by ``user`` starting at/after ``start`` and ending at/before ``end``, by start"""
    queryset = CalendarEvent.objects.filter(user=user).select_related('project', 'team')
    if start is not None:
        queryset = queryset.filter(start__gte=start)
    if end is not None:
        queryset = queryset.filter(end__lte=end)
    return queryset.order_by('start', 'id')


def get_upcoming_events(user, limit=5):
    return get_calendar_events(user, start=timezone.now())[:limit]
