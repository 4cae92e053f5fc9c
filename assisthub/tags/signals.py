"""
Tag release signals
Give back an entity's tags before it is deleted, whatever path deletes it
(API views, admin, bulk queryset deletes).
"""
from django.db.models.signals import pre_delete
import logging

from .categories import ENTITY_STORES
from .services import release_entity_tags

logger = logging.getLogger(__name__)


def make_tag_release_receiver(category):
    def release_tags_on_delete(sender, instance, **kwargs):
        released = instance.tags or []
        release_entity_tags(category, instance.pk)
        if released:
            logger.debug(f"Released tags {released} of {sender.__name__} {instance.pk}")
    return release_tags_on_delete


def connect_tag_signals():
    """Hook a pre_delete receiver onto every taggable model"""
    for category, store in ENTITY_STORES.items():
        pre_delete.connect(
            make_tag_release_receiver(category),
            sender=store.model,
            weak=False,
            dispatch_uid=f'release_tags_{category}',
        )
