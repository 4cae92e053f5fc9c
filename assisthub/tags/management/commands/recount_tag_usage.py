from django.core.management.base import BaseCommand, CommandError

from assisthub.tags.exceptions import TagError
from assisthub.tags.models import TagCategory
from assisthub.tags.services import find_usage_drift, recount_tag_usage


class Command(BaseCommand):
    help = 'Recomputes tag usage counts from the tags stored on users, teams, clients and projects'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drifted counts without saving changes',
        )
        parser.add_argument(
            '--category',
            choices=TagCategory.values,
            help='Only check tags of this category',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        category = options.get('category')
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        try:
            drift = find_usage_drift(category) if dry_run else recount_tag_usage(category)
        except TagError as e:
            raise CommandError(str(e))

        if not drift:
            self.stdout.write(self.style.SUCCESS("All tag usage counts are correct."))
            return

        for tag, stored, actual in drift:
            self.stdout.write(f"  - {tag.name} [{tag.category}]: {stored} -> {actual}")

        if dry_run:
            self.stdout.write(self.style.WARNING(f"\nDry run complete. {len(drift)} tags would be updated."))
        else:
            self.stdout.write(self.style.SUCCESS(f"\nRecount complete: {len(drift)} tags updated."))
