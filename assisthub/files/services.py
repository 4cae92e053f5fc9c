"""
File attachment operations.

Rows are links; the stored object behind them is identified by
``storage_path``. Listing groups rows per physical file and deletion removes
the object together with every row that references it.
"""
import logging

from django.core.files.storage import default_storage
from django.db import DatabaseError, transaction

from assisthub.tags.categories import get_entity_store
from assisthub.tags.exceptions import EntityNotFound
from .models import FileAttachment, LinkedType

logger = logging.getLogger(__name__)


def get_linked_entity(linked_type, linked_id):
    """The entity a link points at. Raises EntityNotFound when it does not exist."""
    if linked_type not in LinkedType.values:
        raise EntityNotFound('Entity type', linked_type)
    store = get_entity_store(linked_type.upper())
    entity = store.model.objects.filter(pk=linked_id).first()
    if entity is None:
        raise EntityNotFound(store.label, linked_id)
    return entity


def upload_file(uploaded_file, linked_type, linked_id, user=None):
    get_linked_entity(linked_type, linked_id)
    attachment = FileAttachment(
        name=uploaded_file.name,
        content_type=getattr(uploaded_file, 'content_type', '') or '',
        size=uploaded_file.size,
        uploaded_by=user,
        linked_type=linked_type,
        linked_id=linked_id,
    )
    attachment.file.save(uploaded_file.name, uploaded_file, save=False)
    attachment.storage_path = attachment.file.name
    try:
        with transaction.atomic():
            attachment.save()
    except DatabaseError:
        logger.error(f"Could not record {attachment.storage_path}, removing stored object")
        _remove_stored_object(attachment.storage_path)
        raise
    logger.info(f"Stored file {attachment.storage_path} for {linked_type} {linked_id}")
    return attachment


def link_file(file_id, linked_type, linked_id, user=None):
    """Link an already stored file to another entity. Existing links are returned as-is."""
    source = FileAttachment.objects.filter(pk=file_id).first()
    if source is None:
        raise EntityNotFound('File', file_id)
    get_linked_entity(linked_type, linked_id)
    attachment, created = FileAttachment.objects.get_or_create(
        storage_path=source.storage_path,
        linked_type=linked_type,
        linked_id=linked_id,
        defaults={
            'name': source.name,
            'file': source.file.name,
            'content_type': source.content_type,
            'size': source.size,
            'uploaded_by': user,
        },
    )
    if created:
        logger.info(f"Linked file {source.storage_path} to {linked_type} {linked_id}")
    return attachment


def get_entity_files(linked_type, linked_id):
    return FileAttachment.objects.filter(linked_type=linked_type, linked_id=linked_id).order_by('-uploaded_at', '-id')


def _file_key(attachment):
    return attachment.storage_path or f'id:{attachment.pk}'


def get_all_files():
    """
    One entry per physical file, newest first, with every link in ``linked_to``.
    Rows without a storage path are their own file.
    """
    files = {}
    for attachment in FileAttachment.objects.select_related('uploaded_by').order_by('-uploaded_at', '-id'):
        key = _file_key(attachment)
        link = {'type': attachment.linked_type, 'id': attachment.linked_id}
        entry = files.get(key)
        if entry is None:
            files[key] = {
                'id': attachment.pk,
                'name': attachment.name,
                'url': attachment.file.url if attachment.file else '',
                'storage_path': attachment.storage_path,
                'content_type': attachment.content_type,
                'size': attachment.size,
                'uploaded_by': attachment.uploaded_by.username if attachment.uploaded_by else None,
                'uploaded_at': attachment.uploaded_at,
                'linked_to': [link],
            }
        elif link not in entry['linked_to']:
            entry['linked_to'].append(link)
    return list(files.values())


def delete_file(file_id=None, storage_path=None):
    """
    Delete a physical file and every row referencing it.

    The file is found by ``storage_path`` or through the row ``file_id``.
    Raises EntityNotFound when nothing matches. Returns the number of rows removed.
    """
    with transaction.atomic():
        if storage_path:
            rows = list(FileAttachment.objects.select_for_update().filter(storage_path=storage_path))
        elif file_id is not None:
            row = FileAttachment.objects.select_for_update().filter(pk=file_id).first()
            if row is None:
                rows = []
            elif row.storage_path:
                rows = list(FileAttachment.objects.select_for_update().filter(storage_path=row.storage_path))
            else:
                rows = [row]
        else:
            rows = []
        if not rows:
            raise EntityNotFound('File', storage_path or file_id)

        path = rows[0].storage_path or rows[0].file.name
        FileAttachment.objects.filter(pk__in=[row.pk for row in rows]).delete()
        transaction.on_commit(lambda: _remove_stored_object(path))

    logger.info(f"Deleted file {path} ({len(rows)} links)")
    return len(rows)


def _remove_stored_object(path):
    if not path:
        return
    if not default_storage.exists(path):
        logger.warning(f"Stored object {path} was already missing")
        return
    try:
        default_storage.delete(path)
    except OSError as e:
        logger.error(f"Stored object {path} could not be removed: {e}")
