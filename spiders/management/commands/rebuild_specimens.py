# management/commands/rebuild_specimens.py

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand
from django.db import transaction

from spiders.models import Specimen
from spiders.tools import rebuild_denormalized


class Command(BaseCommand):
    help = "Recompute stage, size, and feeding fields of specimens from their events"

    def add_arguments(self, parser):
        group = parser.add_mutually_exclusive_group()
        group.add_argument(
            "--update",
            type=str,
            help="Rebuild a specific specimen by UUID",
        )
        group.add_argument("--all", action="store_true", help="rebuild all specimens")

    def handle(self, *args, **options):
        update_uuid = options.get("update")
        if update_uuid:
            try:
                specimen = Specimen.objects.get(uuid=update_uuid)
            except (Specimen.DoesNotExist, ValidationError):
                self.stdout.write(
                    self.style.ERROR(f"Specimen with UUID {update_uuid} not found")
                )
                return
            if rebuild_denormalized([specimen]):
                self.stdout.write(self.style.SUCCESS(f"Rebuilt {specimen}"))
            else:
                self.stdout.write(f"{specimen} is up to date")
        elif options.get("all"):
            self.rebuild_all()
        else:
            self.stdout.write(self.style.ERROR("--update or --all option is required"))

    def rebuild_all(self):
        specimens = Specimen.objects.order_by("created", "uuid")
        total_count = specimens.count()
        self.stdout.write(f"Checking {total_count} specimens...")

        changed_count = 0
        batch_size = 1000
        for offset in range(0, total_count, batch_size):
            batch = list(specimens[offset : offset + batch_size])
            with transaction.atomic():
                changed_count += len(rebuild_denormalized(batch))
            processed = min(offset + batch_size, total_count)
            self.stdout.write(f"Processed {processed}/{total_count} specimens...")

        self.stdout.write(
            self.style.SUCCESS(f"Rebuilt {changed_count} of {total_count} specimens")
        )
