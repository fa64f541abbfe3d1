# -*- mode: python -*-
import datetime

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from spiders import reminders
from spiders.models import Reminder

User = get_user_model()


def today() -> datetime.date:
    return datetime.date.today()


class DatabaseBackendTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="keeper", password="pw")

    def schedule(self, remind_on, category=reminders.HATCH_CATEGORY, owner=None):
        return reminders.schedule_at(
            remind_on,
            "Cocoon hatch approaching",
            "Check the cocoon",
            owner=owner or self.user,
            category=category,
        )

    def test_default_backend(self):
        self.assertIsInstance(reminders.get_backend(), reminders.DatabaseBackend)

    def test_schedule(self):
        remind_on = today() + datetime.timedelta(days=10)
        pk = self.schedule(remind_on)
        reminder = Reminder.objects.get(pk=pk)
        self.assertEqual(reminder.remind_on, remind_on)
        self.assertEqual(reminder.owner, self.user)
        self.assertEqual(reminder.category, reminders.HATCH_CATEGORY)

    def test_schedule_today(self):
        self.assertIsNotNone(self.schedule(today()))

    def test_past_reminders_are_not_scheduled(self):
        self.assertIsNone(self.schedule(today() - datetime.timedelta(days=1)))
        self.assertEqual(Reminder.objects.count(), 0)

    def test_cancel_by_category(self):
        other = User.objects.create_user(username="stranger", password="pw")
        soon = today() + datetime.timedelta(days=3)
        self.schedule(soon)
        self.schedule(soon + datetime.timedelta(days=1))
        self.schedule(soon, category=reminders.MOLT_CATEGORY)
        self.schedule(soon, owner=other)
        # already delivered
        Reminder.objects.create(
            owner=self.user,
            category=reminders.HATCH_CATEGORY,
            remind_on=today() - datetime.timedelta(days=5),
            title="old",
        )
        cancelled = reminders.cancel_by_category(self.user, reminders.HATCH_CATEGORY)
        self.assertEqual(cancelled, 2)
        self.assertEqual(Reminder.objects.count(), 3)
        self.assertEqual(
            reminders.cancel_by_category(self.user, reminders.HATCH_CATEGORY), 0
        )


@override_settings(SPIDERS_REMINDER_BACKEND="spiders.reminders.DummyBackend")
class DummyBackendTests(TestCase):
    def test_nothing_is_scheduled(self):
        user = User.objects.create_user(username="keeper", password="pw")
        pk = reminders.schedule_at(
            today() + datetime.timedelta(days=3),
            "title",
            "body",
            owner=user,
            category=reminders.MOLT_CATEGORY,
        )
        self.assertIsNone(pk)
        self.assertEqual(Reminder.objects.count(), 0)
        self.assertEqual(reminders.cancel_by_category(user, reminders.MOLT_CATEGORY), 0)
