"""
Tag registry and tag association operations.

Tags are referenced by name from the ``tags`` list of users, teams, clients
and projects, and every tag keeps a ``usage_count`` of the entities that
carry it. Both representations are only ever changed here, inside one
database transaction per operation, so that::

    tag.usage_count == number of entities in the category store with tag.name in tags

holds after every call.
"""
import logging

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F

from .categories import get_entity_store, validate_category
from .exceptions import (
    DuplicateTag, EntityNotFound, InvalidTagAssociation, TagInUse,
    TagInUseCategoryLocked, TransactionFailed, UnknownTag,
)
from .models import Tag, TagCategory

logger = logging.getLogger(__name__)

TAG_LIST_KEY_PREFIX = 'tag_list:'
TAG_LIST_CACHE_TTL = 300  # 5 minutes


# ==================== CACHE ====================

def get_tag_list_cache_key(category=None):
    return f"{TAG_LIST_KEY_PREFIX}{category or 'all'}"


def invalidate_tag_list_cache():
    keys = [get_tag_list_cache_key()] + [get_tag_list_cache_key(c) for c in TagCategory.values]
    cache.delete_many(keys)
    logger.debug("Invalidated tag list cache")


def _tags_changed():
    # Invalidate now and again after commit so a concurrent reader cannot
    # re-cache rows from before this transaction.
    invalidate_tag_list_cache()
    transaction.on_commit(invalidate_tag_list_cache)


# ==================== HELPERS ====================

def normalize_tag_name(name):
    if not isinstance(name, str):
        raise InvalidTagAssociation(f'Invalid tag name: {name!r}')
    return name.strip().upper()


def _normalize_ids(model, ids):
    """Coerce raw IDs to the model's primary key type, dropping duplicates"""
    if ids is None:
        return []
    if isinstance(ids, (str, bytes)) or not hasattr(ids, '__iter__'):
        raise InvalidTagAssociation('Entity IDs must be a list.')
    normalized = []
    for raw in ids:
        try:
            value = model._meta.pk.to_python(raw)
        except ValidationError:
            raise InvalidTagAssociation(f'Invalid entity ID: {raw!r}')
        if value is None:
            raise InvalidTagAssociation(f'Invalid entity ID: {raw!r}')
        if value not in normalized:
            normalized.append(value)
    return normalized


# ==================== REGISTRY ====================

def get_tags(category=None):
    """All tags, optionally restricted to one category"""
    queryset = Tag.objects.all()
    if category:
        queryset = queryset.filter(category=validate_category(category))
    return list(queryset.order_by('category', 'name'))


def get_tag_by_id(tag_id):
    """The tag with ``tag_id`` or None"""
    return Tag.objects.filter(pk=tag_id).first()


def create_tag(name, category, user=None):
    """Register a new tag with ``usage_count`` 0. Names are stored uppercase."""
    name = normalize_tag_name(name)
    category = validate_category(category)
    if not name:
        raise InvalidTagAssociation('Tag name cannot be empty.')

    if Tag.objects.filter(name=name, category=category).exists():
        logger.warning(f'Tag "{name}" in category "{category}" already exists.')
        raise DuplicateTag(name, category)

    try:
        with transaction.atomic():
            tag = Tag.objects.create(name=name, category=category, usage_count=0, created_by=user)
    except IntegrityError:
        raise DuplicateTag(name, category)

    _tags_changed()
    logger.info(f"Created tag {tag.name} [{tag.category}] (ID: {tag.pk})")
    return tag


def _rename_in_entities(category, old_name, new_name):
    """Rewrite ``old_name`` to ``new_name`` in every entity of the category store"""
    store = get_entity_store(category)
    renamed = 0
    for entity in store.model.objects.select_for_update().only('id', 'tags').order_by('pk'):
        current = list(entity.tags or [])
        if old_name not in current:
            continue
        updated = []
        for tag_name in current:
            value = new_name if tag_name == old_name else tag_name
            if value not in updated:
                updated.append(value)
        entity.tags = updated
        entity.save(update_fields=['tags'])
        renamed += 1
    return renamed


def update_tag(tag_id, name=None, category=None):
    """
    Rename a tag and/or move it to another category.

    Renaming checks for collisions against other tags in the target
    category and rewrites the name inside every entity that carries it.
    A category change is refused while the tag is in use, since entities
    reference it under the old category.
    """
    with transaction.atomic():
        tag = Tag.objects.select_for_update().filter(pk=tag_id).first()
        if tag is None:
            raise EntityNotFound('Tag', tag_id)

        new_name = tag.name
        if name is not None:
            new_name = normalize_tag_name(name)
            if not new_name:
                raise InvalidTagAssociation('Tag name cannot be empty.')
        new_category = validate_category(category) if category else tag.category

        if new_name == tag.name and new_category == tag.category:
            return tag

        if new_category != tag.category and tag.usage_count > 0:
            raise TagInUseCategoryLocked(tag.name, tag.usage_count)

        if Tag.objects.filter(name=new_name, category=new_category).exclude(pk=tag.pk).exists():
            raise DuplicateTag(new_name, new_category)

        old_name = tag.name
        if new_name != old_name and tag.usage_count > 0:
            renamed = _rename_in_entities(tag.category, old_name, new_name)
            logger.info(f"Renamed tag {old_name} -> {new_name} in {renamed} entities")

        tag.name = new_name
        tag.category = new_category
        try:
            tag.save(update_fields=['name', 'category', 'updated_at'])
        except IntegrityError:
            raise DuplicateTag(new_name, new_category)

    _tags_changed()
    return tag


def delete_tag(tag_id):
    """
    Delete an unused tag. Returns the deleted tag, or None if it did not exist.
    """
    with transaction.atomic():
        tag = Tag.objects.select_for_update().filter(pk=tag_id).first()
        if tag is None:
            logger.warning(f"Attempted to delete non-existent tag: {tag_id}")
            return None
        if tag.usage_count > 0:
            raise TagInUse(tag.name, tag.usage_count)
        tag.delete()

    _tags_changed()
    logger.info(f"Deleted tag {tag.name} [{tag.category}]")
    return tag


# ==================== ASSOCIATIONS ====================

def get_entities_by_tag(tag_name, category):
    """
    Entities of ``category`` whose tags contain ``tag_name``, as small
    summaries (id + display fields), in storage order.
    """
    store = get_entity_store(category)
    name = normalize_tag_name(tag_name)
    fields = ('id', 'tags') + store.display_fields
    return [
        store.summarize(entity)
        for entity in store.model.objects.only(*fields).order_by('pk').iterator()
        if name in (entity.tags or [])
    ]


def update_tag_associations(tag_id, tag_name, category, entity_ids_to_add, entity_ids_to_remove):
    """
    Add ``tag_name`` to ``entity_ids_to_add`` and remove it from
    ``entity_ids_to_remove``, adjusting the tag's usage count by the net
    change.

    All entity writes and the counter update are applied in one transaction:
    if any entity is missing or any write is rejected, TransactionFailed is
    raised and nothing is changed.

    Returns ``{'tag': Tag, 'added': [ids], 'removed': [ids]}`` listing the
    entities whose tag set actually changed.
    """
    store = get_entity_store(category)
    category = validate_category(category)
    name = normalize_tag_name(tag_name)
    to_add = _normalize_ids(store.model, entity_ids_to_add)
    to_remove = _normalize_ids(store.model, entity_ids_to_remove)

    overlap = set(to_add) & set(to_remove)
    if overlap:
        raise InvalidTagAssociation(f'Entity IDs cannot be both added and removed: {sorted(overlap)}')

    try:
        with transaction.atomic():
            tag = Tag.objects.select_for_update().filter(pk=tag_id).first()
            if tag is None:
                raise EntityNotFound('Tag', tag_id)
            if tag.category != category or tag.name != name:
                raise InvalidTagAssociation(
                    f'Tag {tag_id} is "{tag.name}" [{tag.category}], not "{name}" [{category}].'
                )

            if not to_add and not to_remove:
                return {'tag': tag, 'added': [], 'removed': []}

            entities = {
                entity.pk: entity
                for entity in store.model.objects.select_for_update().filter(pk__in=to_add + to_remove)
            }
            missing = [entity_id for entity_id in to_add + to_remove if entity_id not in entities]
            if missing:
                raise TransactionFailed(f'{store.label} not found: {missing}. No changes were applied.')

            removed = []
            for entity_id in to_remove:
                entity = entities[entity_id]
                current = list(entity.tags or [])
                if name not in current:
                    continue
                entity.tags = [t for t in current if t != name]
                entity.save(update_fields=['tags'])
                removed.append(entity_id)

            added = []
            for entity_id in to_add:
                entity = entities[entity_id]
                current = list(entity.tags or [])
                if name in current:
                    continue
                entity.tags = current + [name]
                entity.save(update_fields=['tags'])
                added.append(entity_id)

            delta = len(added) - len(removed)
            requested = len(to_add) - len(to_remove)
            if delta != requested:
                logger.warning(
                    f"Tag {name} [{category}]: requested change {requested:+d}, applied {delta:+d} "
                    f"(some entities already matched the target state)"
                )
            if delta:
                Tag.objects.filter(pk=tag.pk).update(usage_count=F('usage_count') + delta)
            tag.refresh_from_db()
    except DatabaseError as e:
        logger.error(f"Tag association update for {name} [{category}] rolled back: {str(e)}")
        raise TransactionFailed(f'Tag association update for "{name}" failed: {str(e)}. No changes were applied.') from e

    _tags_changed()
    logger.info(f"Tag {name} [{category}]: added to {len(added)}, removed from {len(removed)}, usage count {tag.usage_count}")
    return {'tag': tag, 'added': added, 'removed': removed}


def set_entity_tags(category, entity_id, tag_names):
    """
    Make the tag set of one entity equal to ``tag_names``.

    Every change goes through update_tag_associations so usage counts stay
    in sync. Names without a registered tag in ``category`` raise UnknownTag;
    stale names already on the entity with no registered tag are dropped.
    Returns the entity's resulting tag list.
    """
    store = get_entity_store(category)
    category = validate_category(category)
    if tag_names is None:
        tag_names = []
    if isinstance(tag_names, (str, bytes)) or not hasattr(tag_names, '__iter__'):
        raise InvalidTagAssociation('Tags must be a list of names.')

    desired = []
    for raw in tag_names:
        name = normalize_tag_name(raw)
        if name and name not in desired:
            desired.append(name)

    with transaction.atomic():
        entity = store.model.objects.select_for_update().filter(pk=entity_id).first()
        if entity is None:
            raise EntityNotFound(store.label, entity_id)

        current = list(entity.tags or [])
        to_add = [name for name in desired if name not in current]
        to_remove = [name for name in current if name not in desired]
        if not to_add and not to_remove:
            return current

        registered = {
            tag.name: tag
            for tag in Tag.objects.filter(category=category, name__in=to_add + to_remove)
        }
        unknown = set(to_add) - set(registered)
        if unknown:
            raise UnknownTag(unknown, category)

        for name in to_add:
            update_tag_associations(registered[name].pk, name, category, [entity.pk], [])

        stale = []
        for name in to_remove:
            if name in registered:
                update_tag_associations(registered[name].pk, name, category, [], [entity.pk])
            else:
                stale.append(name)

        entity.refresh_from_db(fields=['tags'])
        if stale:
            logger.warning(f"Dropping unregistered tags {stale} from {store.label} {entity.pk}")
            entity.tags = [t for t in entity.tags if t not in stale]
            entity.save(update_fields=['tags'])

    return list(entity.tags)


def release_entity_tags(category, entity_id):
    """Remove every tag from an entity. Runs from pre_delete on every taggable model."""
    return set_entity_tags(category, entity_id, [])


# ==================== CONSISTENCY ====================

def count_tag_usage(tag):
    """Number of entities that actually carry ``tag``"""
    store = get_entity_store(tag.category)
    return sum(
        1 for tags in store.model.objects.values_list('tags', flat=True)
        if tag.name in (tags or [])
    )


def find_usage_drift(category=None):
    """
    Tags whose stored usage count differs from their real membership, as a
    list of ``(tag, stored_count, actual_count)``.
    """
    drift = []
    for tag in get_tags(category):
        actual = count_tag_usage(tag)
        if actual != tag.usage_count:
            drift.append((tag, tag.usage_count, actual))
    return drift


def recount_tag_usage(category=None):
    """Reset drifted usage counts from membership. Returns the drift that was fixed."""
    with transaction.atomic():
        drift = find_usage_drift(category)
        for tag, stored, actual in drift:
            Tag.objects.filter(pk=tag.pk).update(usage_count=actual)
            logger.warning(f"Tag {tag.name} [{tag.category}] usage count {stored} -> {actual}")
    if drift:
        _tags_changed()
    return drift
