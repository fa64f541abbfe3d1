# -*- mode: python -*-
import datetime
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase

from spiders.models import FoodType, Specimen

User = get_user_model()


class RebuildSpecimensTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="keeper", password="pw")

    def setUp(self):
        self.specimen = Specimen.objects.create(
            owner=self.user, name="Rosie", species="Grammostola rosea"
        )
        self.specimen.record_molt(
            owner=self.user,
            date=datetime.date(2024, 1, 1),
            previous_stage=1,
            new_stage=2,
        )
        self.specimen.record_feeding(
            owner=self.user, date=datetime.date(2024, 1, 5), food_type=FoodType.CRICKET
        )
        Specimen.objects.filter(pk=self.specimen.pk).update(
            current_stage=1, last_fed_on=None
        )

    def call(self, *args):
        out = StringIO()
        call_command("rebuild_specimens", *args, stdout=out)
        return out.getvalue()

    def test_rebuild_all(self):
        output = self.call("--all")
        self.assertIn("Rebuilt 1 of 1 specimens", output)
        self.specimen.refresh_from_db()
        self.assertEqual(self.specimen.current_stage, 2)
        self.assertEqual(self.specimen.last_fed_on, datetime.date(2024, 1, 5))

    def test_rebuild_one(self):
        output = self.call("--update", str(self.specimen.pk))
        self.assertIn("Rebuilt Rosie", output)
        output = self.call("--update", str(self.specimen.pk))
        self.assertIn("Rosie is up to date", output)

    def test_unknown_specimen(self):
        output = self.call("--update", "not-a-uuid")
        self.assertIn("not found", output)

    def test_option_required(self):
        output = self.call()
        self.assertIn("option is required", output)
