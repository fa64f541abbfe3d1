# -*- mode: python -*-
import datetime
import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Specimen",
            fields=[
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4,
                        primary_key=True,
                        serialize=False,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(max_length=64)),
                ("species", models.CharField(max_length=128)),
                (
                    "sex",
                    models.CharField(
                        choices=[
                            ("male", "male"),
                            ("female", "female"),
                            ("unknown", "unknown"),
                            ("hermaphrodite", "hermaphrodite"),
                        ],
                        default="unknown",
                        max_length=16,
                    ),
                ),
                (
                    "stage",
                    models.CharField(
                        choices=[
                            ("baby", "baby"),
                            ("juvenile", "juvenile"),
                            ("subadult", "subadult"),
                            ("adult", "adult"),
                            ("senior", "senior"),
                        ],
                        default="baby",
                        max_length=16,
                    ),
                ),
                (
                    "current_stage",
                    models.PositiveIntegerField(
                        default=1, help_text="current instar (L1, L2, ...)"
                    ),
                ),
                (
                    "body_length",
                    models.FloatField(
                        blank=True, help_text="last measured body length (cm)", null=True
                    ),
                ),
                ("measured_on", models.DateField(blank=True, null=True)),
                (
                    "weight",
                    models.FloatField(blank=True, help_text="weight (g)", null=True),
                ),
                ("date_acquired", models.DateField(default=datetime.date.today)),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="unset for specimens that died or were removed",
                    ),
                ),
                ("death_date", models.DateField(blank=True, null=True)),
                ("last_fed_on", models.DateField(blank=True, null=True)),
                ("last_food_type", models.CharField(blank=True, max_length=16)),
                ("notes", models.TextField(blank=True)),
                (
                    "attributes",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="specify additional attributes for the specimen",
                    ),
                ),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("updated", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="specimens",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "parent_female",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="offspring",
                        to="spiders.specimen",
                    ),
                ),
            ],
            options={
                "ordering": ["species", "name"],
            },
        ),
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.AutoField(primary_key=True, serialize=False)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("molting", "molting"),
                            ("feeding", "feeding"),
                            ("container_change", "container change"),
                            ("mating", "mating"),
                            ("cocoon", "cocoon"),
                            ("male_maturation", "male maturation"),
                            ("photo", "photo"),
                        ],
                        max_length=20,
                    ),
                ),
                ("title", models.CharField(max_length=128)),
                ("description", models.TextField(blank=True)),
                ("date", models.DateField()),
                ("time", models.TimeField(blank=True, null=True)),
                (
                    "event_data",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="data specific to the category of event",
                    ),
                ),
                (
                    "photos",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="attached photos (id, url, date, is_main)",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("completed", "completed"),
                            ("scheduled", "scheduled"),
                            ("cancelled", "cancelled"),
                            ("in_progress", "in progress"),
                        ],
                        default="completed",
                        max_length=16,
                    ),
                ),
                (
                    "importance",
                    models.CharField(
                        choices=[
                            ("low", "low"),
                            ("medium", "medium"),
                            ("high", "high"),
                            ("critical", "critical"),
                        ],
                        default="medium",
                        max_length=16,
                    ),
                ),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("updated", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "specimen",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        to="spiders.specimen",
                    ),
                ),
            ],
            options={
                "ordering": ("-date", "-created"),
                "get_latest_by": ("date", "created"),
            },
        ),
        migrations.CreateModel(
            name="Cocoon",
            fields=[],
            options={
                "proxy": True,
                "indexes": [],
                "constraints": [],
            },
            bases=("spiders.event",),
        ),
        migrations.AddField(
            model_name="specimen",
            name="cocoon",
            field=models.ForeignKey(
                blank=True,
                help_text="the cocoon this specimen hatched from",
                limit_choices_to={"category": "cocoon"},
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="hatchlings",
                to="spiders.event",
            ),
        ),
        migrations.CreateModel(
            name="Reminder",
            fields=[
                ("id", models.AutoField(primary_key=True, serialize=False)),
                ("category", models.CharField(max_length=32)),
                ("remind_on", models.DateField()),
                ("title", models.CharField(max_length=128)),
                ("body", models.TextField(blank=True)),
                ("created", models.DateTimeField(auto_now_add=True)),
                (
                    "event",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reminders",
                        to="spiders.event",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("remind_on",),
            },
        ),
        migrations.AddIndex(
            model_name="specimen",
            index=models.Index(fields=["owner", "is_active"], name="owner_active_idx"),
        ),
        migrations.AddIndex(
            model_name="event",
            index=models.Index(
                fields=["specimen", "category"], name="specimen_category_idx"
            ),
        ),
        migrations.AddIndex(
            model_name="event",
            index=models.Index(fields=["owner", "category"], name="owner_category_idx"),
        ),
        migrations.AddIndex(
            model_name="event",
            index=models.Index(fields=["specimen", "date"], name="specimen_date_idx"),
        ),
    ]
