"""
Test suite for file attachments
"""
import os
import shutil
import tempfile
from unittest import mock

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework import status

from assisthub.core.models import AuditLog
from assisthub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from assisthub.tags.exceptions import EntityNotFound
from . import services
from .models import FileAttachment

MEDIA_ROOT = tempfile.mkdtemp()


def _upload(name='report.pdf', content=b'%PDF-1.4 test'):
    return SimpleUploadedFile(name, content, content_type='application/pdf')


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class FileServiceTests(TestCase):

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.project = TestDataFactory.create_project()
        self.customer = TestDataFactory.create_client()

    def test_upload_records_metadata(self):
        attachment = services.upload_file(_upload(), 'project', self.project.pk)
        self.assertEqual(attachment.name, 'report.pdf')
        self.assertEqual(attachment.size, len(b'%PDF-1.4 test'))
        self.assertEqual(attachment.storage_path, attachment.file.name)
        self.assertTrue(default_storage.exists(attachment.storage_path))

    def test_upload_for_missing_entity(self):
        with self.assertRaises(EntityNotFound):
            services.upload_file(_upload(), 'project', self.project.pk + 1000)

    def test_failed_upload_leaves_no_stored_object(self):
        with mock.patch.object(FileAttachment, 'save', side_effect=DatabaseError('connection lost')):
            with self.assertRaises(DatabaseError):
                services.upload_file(_upload(name='orphan.pdf'), 'project', self.project.pk)

        self.assertFalse(FileAttachment.objects.exists())
        stored = [name for _, _, names in os.walk(MEDIA_ROOT) for name in names]
        self.assertFalse([name for name in stored if name.startswith('orphan')])

    def test_get_all_files_deduplicates_by_storage_path(self):
        attachment = services.upload_file(_upload(), 'project', self.project.pk)
        services.link_file(attachment.pk, 'client', self.customer.pk)
        services.upload_file(_upload('other.pdf'), 'client', self.customer.pk)

        files = services.get_all_files()
        self.assertEqual(len(files), 2)
        shared = next(f for f in files if f['storage_path'] == attachment.storage_path)
        self.assertCountEqual(shared['linked_to'], [
            {'type': 'project', 'id': self.project.pk},
            {'type': 'client', 'id': self.customer.pk},
        ])

    def test_link_twice_is_idempotent(self):
        attachment = services.upload_file(_upload(), 'project', self.project.pk)
        first = services.link_file(attachment.pk, 'client', self.customer.pk)
        second = services.link_file(attachment.pk, 'client', self.customer.pk)
        self.assertEqual(first.pk, second.pk)

    def test_delete_removes_every_link_and_object(self):
        attachment = services.upload_file(_upload(), 'project', self.project.pk)
        services.link_file(attachment.pk, 'client', self.customer.pk)
        path = attachment.storage_path

        with self.captureOnCommitCallbacks(execute=True):
            removed = services.delete_file(file_id=attachment.pk)

        self.assertEqual(removed, 2)
        self.assertFalse(FileAttachment.objects.filter(storage_path=path).exists())
        self.assertFalse(default_storage.exists(path))

    def test_delete_by_storage_path_with_missing_object(self):
        attachment = services.upload_file(_upload(), 'project', self.project.pk)
        default_storage.delete(attachment.storage_path)

        with self.captureOnCommitCallbacks(execute=True):
            removed = services.delete_file(storage_path=attachment.storage_path)
        self.assertEqual(removed, 1)

    def test_delete_nothing_matched(self):
        with self.assertRaises(EntityNotFound):
            services.delete_file(file_id=999999)
        with self.assertRaises(EntityNotFound):
            services.delete_file(storage_path='attachments/none.pdf')
        with self.assertRaises(EntityNotFound):
            services.delete_file()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class FileAPITests(TestCase):
    """Test file endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.project = TestDataFactory.create_project()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_upload_list_delete(self):
        response = self.client.post('/api/v1/files/', {
            'file': _upload(), 'linked_type': 'project', 'linked_id': self.project.pk
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        file_id = response.data['id']

        response = self.client.get('/api/v1/files/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['linked_to'], [{'type': 'project', 'id': self.project.pk}])

        response = self.client.get(f'/api/v1/files/project/{self.project.pk}/')
        self.assertEqual([f['id'] for f in response.data], [file_id])

        response = self.client.delete(f'/api/v1/files/{file_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(AuditLog.objects.filter(action='file_delete').exists())

    def test_delete_missing(self):
        response = self.client.delete('/api/v1/files/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_supervisor())
        response = self.client.get('/api/v1/files/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_linked_type(self):
        response = self.client.get('/api/v1/files/invoice/1/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
