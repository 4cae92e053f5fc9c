import django_filters
from django.db.models import Q
from .models import Client


class ClientFilter(django_filters.FilterSet):
    """Filters for the client list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    awaiting_approval = django_filters.BooleanFilter(field_name='awaiting_admin_approval')
    tag = django_filters.CharFilter(method='filter_tag', label='Tag')

    class Meta:
        model = Client
        fields = ['search', 'awaiting_approval', 'tag']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(company_name__icontains=value) |
            Q(contact_person__icontains=value) |
            Q(address__icontains=value)
        )

    def filter_tag(self, queryset, name, value):
        # JSON containment is not available on every backend
        value = value.strip().upper()
        if not value:
            return queryset
        ids = [pk for pk, tags in queryset.values_list('id', 'tags') if value in (tags or [])]
        return queryset.filter(id__in=ids)
