"""
Category -> entity store table.

Each tag category owns exactly one store of taggable entities. Models are
resolved lazily through the app registry so this module can be imported
before every app is loaded.
"""
from django.apps import apps

from .exceptions import InvalidTagAssociation
from .models import TagCategory


class EntityStore:
    """A store of taggable entities and the fields used to display them"""

    def __init__(self, model_label, display_fields):
        self.model_label = model_label
        self.display_fields = display_fields

    @property
    def model(self):
        return apps.get_model(self.model_label)

    @property
    def label(self):
        return self.model._meta.verbose_name.title()

    def display_name(self, entity):
        return ' '.join(str(getattr(entity, field) or '') for field in self.display_fields).strip()

    def summarize(self, entity):
        summary = {'id': entity.pk}
        for field in self.display_fields:
            summary[field] = getattr(entity, field)
        summary['display_name'] = self.display_name(entity)
        return summary


ENTITY_STORES = {
    TagCategory.USER: EntityStore('core.User', ('first_name', 'last_name')),
    TagCategory.TEAM: EntityStore('teams.Team', ('name',)),
    TagCategory.CLIENT: EntityStore('clients.Client', ('company_name',)),
    TagCategory.PROJECT: EntityStore('projects.Project', ('name',)),
}


def validate_category(category):
    """Return ``category`` as a TagCategory or raise InvalidTagAssociation"""
    try:
        return TagCategory(category)
    except ValueError:
        raise InvalidTagAssociation(f'Invalid tag category: {category!r}')


def get_entity_store(category):
    return ENTITY_STORES[validate_category(category)]
