import django_filters
from django.db.models import Q
from .models import Project, ProjectStatus, ProjectPriority


class ProjectFilter(django_filters.FilterSet):
    """Filters for the project list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=ProjectStatus.choices)
    priority = django_filters.ChoiceFilter(choices=ProjectPriority.choices)
    client = django_filters.NumberFilter(field_name='clients__id', distinct=True)
    member = django_filters.NumberFilter(field_name='team_members__id', distinct=True)
    due_before = django_filters.DateFilter(field_name='due_date', lookup_expr='lte')
    due_after = django_filters.DateFilter(field_name='due_date', lookup_expr='gte')

    class Meta:
        model = Project
        fields = ['search', 'status', 'priority', 'client', 'member', 'due_before', 'due_after']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(description__icontains=value) |
            Q(clients__company_name__icontains=value)
        ).distinct()
