"""
Test suite for tags
Tests: registry lifecycle, association updates, usage counter consistency, endpoints
"""
from io import StringIO
from unittest import mock

from django.contrib import admin
from django.core.cache import cache
from django.core.management import call_command
from django.db import DatabaseError
from django.test import RequestFactory, TestCase
from rest_framework import status

from assisthub.core.models import AuditLog
from assisthub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from assisthub.clients.models import Client
from assisthub.projects.models import Project
from assisthub.teams.models import Team
from . import services
from .exceptions import (
    DuplicateTag, EntityNotFound, InvalidTagAssociation, TagInUse,
    TagInUseCategoryLocked, TransactionFailed, UnknownTag,
)
from .models import Tag, TagCategory


class TagCounterMixin:
    def assertUsageMatchesMembership(self, tag):
        tag.refresh_from_db()
        self.assertEqual(tag.usage_count, services.count_tag_usage(tag))


class TagLifecycleTests(TagCounterMixin, TestCase):
    """create_tag / update_tag / delete_tag"""

    def setUp(self):
        cache.clear()

    def test_create_tag_normalizes_name(self):
        tag = services.create_tag('  urgente ', 'PROJECT')
        self.assertEqual(tag.name, 'URGENTE')
        self.assertEqual(tag.category, TagCategory.PROJECT)
        self.assertEqual(tag.usage_count, 0)

    def test_create_duplicate_tag(self):
        services.create_tag('URGENTE', 'PROJECT')
        with self.assertRaises(DuplicateTag):
            services.create_tag('urgente', 'PROJECT')
        self.assertEqual(Tag.objects.filter(name='URGENTE').count(), 1)

    def test_same_name_in_other_category_allowed(self):
        services.create_tag('URGENTE', 'PROJECT')
        tag = services.create_tag('URGENTE', 'CLIENT')
        self.assertEqual(tag.category, TagCategory.CLIENT)

    def test_create_tag_invalid_category(self):
        with self.assertRaises(InvalidTagAssociation):
            services.create_tag('URGENTE', 'INVOICE')

    def test_get_tag_by_id_missing(self):
        self.assertIsNone(services.get_tag_by_id(999999))

    def test_get_tags_by_category(self):
        services.create_tag('A1', 'PROJECT')
        services.create_tag('B1', 'TEAM')
        names = [tag.name for tag in services.get_tags('PROJECT')]
        self.assertEqual(names, ['A1'])
        self.assertEqual(len(services.get_tags()), 2)

    def test_delete_unused_tag(self):
        tag = services.create_tag('OLD', 'TEAM')
        deleted = services.delete_tag(tag.pk)
        self.assertEqual(deleted.name, 'OLD')
        self.assertFalse(Tag.objects.filter(pk=tag.pk).exists())

    def test_delete_missing_tag_is_noop(self):
        self.assertIsNone(services.delete_tag(999999))

    def test_delete_tag_in_use(self):
        tag = services.create_tag('URGENTE', 'PROJECT')
        p1 = TestDataFactory.create_project()
        p2 = TestDataFactory.create_project()
        services.update_tag_associations(tag.pk, 'URGENTE', 'PROJECT', [p1.pk, p2.pk], [])

        with self.assertRaises(TagInUse) as ctx:
            services.delete_tag(tag.pk)
        self.assertEqual(ctx.exception.usage_count, 2)
        self.assertTrue(Tag.objects.filter(pk=tag.pk).exists())

    def test_update_tag_rename_collision(self):
        services.create_tag('ALPHA', 'TEAM')
        beta = services.create_tag('BETA', 'TEAM')
        with self.assertRaises(DuplicateTag):
            services.update_tag(beta.pk, name='alpha')

    def test_update_tag_same_name_is_not_a_collision(self):
        tag = services.create_tag('ALPHA', 'TEAM')
        updated = services.update_tag(tag.pk, name='alpha')
        self.assertEqual(updated.name, 'ALPHA')

    def test_update_missing_tag(self):
        with self.assertRaises(EntityNotFound):
            services.update_tag(999999, name='X')

    def test_category_locked_while_in_use(self):
        tag = services.create_tag('ON_SITE', 'TEAM')
        team = TestDataFactory.create_team()
        services.update_tag_associations(tag.pk, 'ON_SITE', 'TEAM', [team.pk], [])

        with self.assertRaises(TagInUseCategoryLocked):
            services.update_tag(tag.pk, category='PROJECT')
        tag.refresh_from_db()
        self.assertEqual(tag.category, TagCategory.TEAM)

    def test_category_change_when_unused(self):
        tag = services.create_tag('ON_SITE', 'TEAM')
        updated = services.update_tag(tag.pk, category='PROJECT')
        self.assertEqual(updated.category, TagCategory.PROJECT)

    def test_rename_in_use_rewrites_entities(self):
        tag = services.create_tag('VIP', 'CLIENT')
        c1 = TestDataFactory.create_client()
        c2 = TestDataFactory.create_client()
        services.update_tag_associations(tag.pk, 'VIP', 'CLIENT', [c1.pk, c2.pk], [])

        services.update_tag(tag.pk, name='premium')

        c1.refresh_from_db()
        c2.refresh_from_db()
        self.assertEqual(c1.tags, ['PREMIUM'])
        self.assertEqual(c2.tags, ['PREMIUM'])
        self.assertEqual(services.get_entities_by_tag('VIP', 'CLIENT'), [])
        self.assertUsageMatchesMembership(Tag.objects.get(pk=tag.pk))


class TagAssociationTests(TagCounterMixin, TestCase):
    """update_tag_associations and get_entities_by_tag"""

    def setUp(self):
        cache.clear()
        self.tag = services.create_tag('URGENTE', 'PROJECT')
        self.p1 = TestDataFactory.create_project(name='Impianto Nord')
        self.p2 = TestDataFactory.create_project(name='Impianto Sud')
        self.p3 = TestDataFactory.create_project(name='Manutenzione')

    def test_urgente_scenario(self):
        result = services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk, self.p2.pk], [])

        self.assertEqual(result['tag'].usage_count, 2)
        self.assertEqual(result['added'], [self.p1.pk, self.p2.pk])
        entities = services.get_entities_by_tag('URGENTE', 'PROJECT')
        self.assertEqual([e['id'] for e in entities], [self.p1.pk, self.p2.pk])
        self.assertEqual(entities[0]['name'], 'Impianto Nord')
        self.assertUsageMatchesMembership(self.tag)

    def test_reader_is_case_insensitive_on_name(self):
        services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p3.pk], [])
        entities = services.get_entities_by_tag('urgente', 'PROJECT')
        self.assertEqual([e['id'] for e in entities], [self.p3.pk])

    def test_reader_other_category_is_empty(self):
        services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk], [])
        self.assertEqual(services.get_entities_by_tag('URGENTE', 'CLIENT'), [])

    def test_empty_diff_is_idempotent(self):
        services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk], [])
        before = Project.objects.get(pk=self.p1.pk).tags

        result = services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [], [])

        self.assertEqual(result['added'], [])
        self.assertEqual(result['removed'], [])
        self.tag.refresh_from_db()
        self.assertEqual(self.tag.usage_count, 1)
        self.assertEqual(Project.objects.get(pk=self.p1.pk).tags, before)

    def test_add_then_remove_round_trip(self):
        self.p1.tags = ['ALTRO']
        self.p1.save()
        services.create_tag('ALTRO', 'PROJECT')
        services.recount_tag_usage('PROJECT')
        self.tag.refresh_from_db()
        count_before = self.tag.usage_count

        services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk], [])
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.tags, ['ALTRO', 'URGENTE'])

        services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [], [self.p1.pk])
        self.p1.refresh_from_db()
        self.tag.refresh_from_db()
        self.assertEqual(self.p1.tags, ['ALTRO'])
        self.assertEqual(self.tag.usage_count, count_before)

    def test_counter_matches_membership_after_each_mutation(self):
        steps = [
            ([self.p1.pk, self.p2.pk], []),
            ([self.p3.pk], [self.p1.pk]),
            ([], [self.p2.pk, self.p3.pk]),
            ([self.p1.pk], []),
        ]
        for to_add, to_remove in steps:
            services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', to_add, to_remove)
            self.assertUsageMatchesMembership(self.tag)

    def test_adding_existing_member_does_not_double_count(self):
        services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk], [])
        result = services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk], [])

        self.assertEqual(result['added'], [])
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.tags.count('URGENTE'), 1)
        self.assertUsageMatchesMembership(self.tag)

    def test_removing_non_member_is_ignored(self):
        result = services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [], [self.p2.pk])
        self.assertEqual(result['removed'], [])
        self.assertUsageMatchesMembership(self.tag)

    def test_overlapping_lists_rejected(self):
        with self.assertRaises(InvalidTagAssociation):
            services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk], [self.p1.pk])

    def test_unknown_tag_id(self):
        with self.assertRaises(EntityNotFound):
            services.update_tag_associations(999999, 'URGENTE', 'PROJECT', [self.p1.pk], [])

    def test_name_mismatch_rejected(self):
        with self.assertRaises(InvalidTagAssociation):
            services.update_tag_associations(self.tag.pk, 'ALTRO', 'PROJECT', [self.p1.pk], [])

    def test_missing_entity_rolls_back_whole_batch(self):
        missing_id = Project.objects.order_by('-pk').first().pk + 100

        with self.assertRaises(TransactionFailed):
            services.update_tag_associations(
                self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk, missing_id, self.p2.pk], []
            )

        self.tag.refresh_from_db()
        self.assertEqual(self.tag.usage_count, 0)
        self.assertEqual(services.get_entities_by_tag('URGENTE', 'PROJECT'), [])

    def test_failed_write_mid_batch_rolls_back(self):
        services.update_tag_associations(self.tag.pk, 'URGENTE', 'PROJECT', [self.p3.pk], [])
        original_save = Project.save
        calls = {'count': 0}

        def flaky_save(instance, *args, **kwargs):
            calls['count'] += 1
            if calls['count'] == 2:
                raise DatabaseError('write rejected')
            return original_save(instance, *args, **kwargs)

        with mock.patch.object(Project, 'save', autospec=True, side_effect=flaky_save):
            with self.assertRaises(TransactionFailed):
                services.update_tag_associations(
                    self.tag.pk, 'URGENTE', 'PROJECT', [self.p1.pk, self.p2.pk], [self.p3.pk]
                )

        self.assertEqual(calls['count'], 2)
        self.tag.refresh_from_db()
        self.assertEqual(self.tag.usage_count, 1)
        self.assertEqual(Project.objects.get(pk=self.p1.pk).tags, [])
        self.assertEqual(Project.objects.get(pk=self.p3.pk).tags, ['URGENTE'])
        self.assertUsageMatchesMembership(self.tag)

    def test_user_category_display_fields(self):
        tag = services.create_tag('ELETTRICISTA', 'USER')
        user = TestDataFactory.create_user(first_name='Luca', last_name='Bianchi')
        services.update_tag_associations(tag.pk, 'ELETTRICISTA', 'USER', [user.pk], [])

        entities = services.get_entities_by_tag('ELETTRICISTA', 'USER')
        self.assertEqual(entities, [{
            'id': user.pk, 'first_name': 'Luca', 'last_name': 'Bianchi', 'display_name': 'Luca Bianchi'
        }])


class EntityTagsTests(TagCounterMixin, TestCase):
    """set_entity_tags / release_entity_tags"""

    def setUp(self):
        cache.clear()
        self.red = services.create_tag('RED', 'TEAM')
        self.blue = services.create_tag('BLUE', 'TEAM')
        self.team = TestDataFactory.create_team()

    def test_set_entity_tags_diffs_current_set(self):
        services.set_entity_tags('TEAM', self.team.pk, ['red', 'blue'])
        result = services.set_entity_tags('TEAM', self.team.pk, ['BLUE'])

        self.assertEqual(result, ['BLUE'])
        self.assertUsageMatchesMembership(self.red)
        self.assertUsageMatchesMembership(self.blue)
        self.red.refresh_from_db()
        self.assertEqual(self.red.usage_count, 0)

    def test_unknown_tag_rejected_without_changes(self):
        services.set_entity_tags('TEAM', self.team.pk, ['RED'])
        with self.assertRaises(UnknownTag):
            services.set_entity_tags('TEAM', self.team.pk, ['BLUE', 'GREEN'])

        self.team.refresh_from_db()
        self.assertEqual(self.team.tags, ['RED'])
        self.assertUsageMatchesMembership(self.blue)

    def test_stale_names_are_dropped(self):
        Team.objects.filter(pk=self.team.pk).update(tags=['GONE'])
        result = services.set_entity_tags('TEAM', self.team.pk, ['RED'])
        self.assertEqual(result, ['RED'])

    def test_release_entity_tags(self):
        services.set_entity_tags('TEAM', self.team.pk, ['RED', 'BLUE'])
        services.release_entity_tags('TEAM', self.team.pk)

        self.team.refresh_from_db()
        self.assertEqual(self.team.tags, [])
        for tag in (self.red, self.blue):
            tag.refresh_from_db()
            self.assertEqual(tag.usage_count, 0)

    def test_missing_entity(self):
        with self.assertRaises(EntityNotFound):
            services.set_entity_tags('TEAM', 999999, ['RED'])


class EntityDeletionTests(TagCounterMixin, TestCase):
    """Deleting a tagged entity outside the API still gives its tags back"""

    def setUp(self):
        cache.clear()
        self.vip = services.create_tag('VIP', 'CLIENT')
        self.client_record = TestDataFactory.create_client()
        services.set_entity_tags('CLIENT', self.client_record.pk, ['VIP'])
        self.vip.refresh_from_db()
        self.assertEqual(self.vip.usage_count, 1)

    def test_admin_delete_model_releases_tags(self):
        request = RequestFactory().post('/admin/')
        request.user = TestDataFactory.create_admin(is_superuser=True)
        admin.site._registry[Client].delete_model(request, self.client_record)

        self.assertUsageMatchesMembership(self.vip)
        self.assertEqual(self.vip.usage_count, 0)

    def test_admin_bulk_delete_releases_tags(self):
        other = TestDataFactory.create_client()
        services.set_entity_tags('CLIENT', other.pk, ['VIP'])
        request = RequestFactory().post('/admin/')
        request.user = TestDataFactory.create_admin(is_superuser=True)
        admin.site._registry[Client].delete_queryset(request, Client.objects.all())

        self.assertUsageMatchesMembership(self.vip)
        self.assertEqual(self.vip.usage_count, 0)

    def test_queryset_delete_releases_tags(self):
        Client.objects.filter(pk=self.client_record.pk).delete()

        self.assertUsageMatchesMembership(self.vip)
        services.delete_tag(self.vip.pk)
        self.assertFalse(Tag.objects.filter(pk=self.vip.pk).exists())

    def test_stale_instance_delete_releases_tags(self):
        stale = Team.objects.create(name='Stale team')
        red = services.create_tag('RED', 'TEAM')
        services.set_entity_tags('TEAM', stale.pk, ['RED'])
        # stale.tags is still the empty list loaded at creation
        stale.delete()

        self.assertUsageMatchesMembership(red)
        self.assertEqual(red.usage_count, 0)


class RecountCommandTests(TestCase):
    """recount_tag_usage management command"""

    def setUp(self):
        cache.clear()
        self.tag = TestDataFactory.create_tag('DRIFT', 'TEAM', usage_count=5)
        TestDataFactory.create_team(tags=['DRIFT'])

    def test_dry_run_reports_without_saving(self):
        out = StringIO()
        call_command('recount_tag_usage', '--dry-run', stdout=out)
        self.assertIn('DRIFT [TEAM]: 5 -> 1', out.getvalue())
        self.tag.refresh_from_db()
        self.assertEqual(self.tag.usage_count, 5)

    def test_recount_repairs(self):
        out = StringIO()
        call_command('recount_tag_usage', stdout=out)
        self.tag.refresh_from_db()
        self.assertEqual(self.tag.usage_count, 1)

        out = StringIO()
        call_command('recount_tag_usage', stdout=out)
        self.assertIn('All tag usage counts are correct.', out.getvalue())


class TagAPITests(TestCase):
    """Test tag endpoints"""

    def setUp(self):
        cache.clear()
        self.supervisor = TestDataFactory.create_supervisor()
        self.technician = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.supervisor)

    def test_create_and_list(self):
        response = self.client.post('/api/v1/tags/', {'name': 'urgente', 'category': 'PROJECT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'URGENTE')
        self.assertTrue(AuditLog.objects.filter(model_name='Tag', action='create').exists())

        response = self.client.get('/api/v1/tags/?category=PROJECT')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['name'] for t in response.data], ['URGENTE'])

    def test_list_cache_invalidated_on_create(self):
        self.client.get('/api/v1/tags/')
        self.client.post('/api/v1/tags/', {'name': 'NEW', 'category': 'TEAM'}, format='json')
        response = self.client.get('/api/v1/tags/')
        self.assertEqual(len(response.data), 1)

    def test_invalid_category_filter(self):
        response = self.client.get('/api/v1/tags/?category=FOO')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_returns_conflict(self):
        TestDataFactory.create_tag('URGENTE', 'PROJECT')
        response = self.client.post('/api/v1/tags/', {'name': 'Urgente', 'category': 'PROJECT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'DuplicateTag')

    def test_technician_cannot_create(self):
        self.client.authenticate_user(self.technician)
        response = self.client.post('/api/v1/tags/', {'name': 'X1', 'category': 'TEAM'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_technician_can_read(self):
        TestDataFactory.create_tag('X1', 'TEAM')
        self.client.authenticate_user(self.technician)
        response = self.client.get('/api/v1/tags/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_associations_endpoint(self):
        tag = TestDataFactory.create_tag('URGENTE', 'PROJECT')
        p1 = TestDataFactory.create_project()
        p2 = TestDataFactory.create_project()

        response = self.client.post(
            f'/api/v1/tags/{tag.pk}/associations/',
            {'entity_ids_to_add': [p1.pk, p2.pk]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tag']['usage_count'], 2)
        self.assertEqual(sorted(e['id'] for e in response.data['entities']), sorted([p1.pk, p2.pk]))

        response = self.client.get(f'/api/v1/tags/{tag.pk}/entities/')
        self.assertEqual(len(response.data), 2)

    def test_associations_missing_entity_conflict(self):
        tag = TestDataFactory.create_tag('URGENTE', 'PROJECT')
        p1 = TestDataFactory.create_project()
        response = self.client.post(
            f'/api/v1/tags/{tag.pk}/associations/',
            {'entity_ids_to_add': [p1.pk, p1.pk + 1000]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'TransactionFailed')

    def test_associations_forbidden_for_technician(self):
        tag = TestDataFactory.create_tag('URGENTE', 'PROJECT')
        self.client.authenticate_user(self.technician)
        response = self.client.post(f'/api/v1/tags/{tag.pk}/associations/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_in_use_conflict(self):
        tag = TestDataFactory.create_tag('URGENTE', 'PROJECT')
        project = TestDataFactory.create_project()
        services.update_tag_associations(tag.pk, 'URGENTE', 'PROJECT', [project.pk], [])

        response = self.client.delete(f'/api/v1/tags/{tag.pk}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'TagInUse')

    def test_delete_unused(self):
        tag = TestDataFactory.create_tag('OLD', 'PROJECT')
        response = self.client.delete(f'/api/v1/tags/{tag.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_patch_category_locked(self):
        tag = TestDataFactory.create_tag('ON_SITE', 'TEAM')
        team = TestDataFactory.create_team()
        services.update_tag_associations(tag.pk, 'ON_SITE', 'TEAM', [team.pk], [])
        response = self.client.patch(f'/api/v1/tags/{tag.pk}/', {'category': 'PROJECT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'TagInUseCategoryLocked')

    def test_entities_of_missing_tag_is_empty(self):
        response = self.client.get('/api/v1/tags/999999/entities/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_consistency_report_and_repair(self):
        TestDataFactory.create_tag('DRIFT', 'TEAM', usage_count=3)
        response = self.client.get('/api/v1/tags/consistency/')
        self.assertFalse(response.data['consistent'])

        response = self.client.post('/api/v1/tags/consistency/', {}, format='json')
        self.assertTrue(response.data['repaired'])
        self.assertEqual(Tag.objects.get(name='DRIFT').usage_count, 0)
