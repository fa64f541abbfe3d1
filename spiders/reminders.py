# -*- mode: python -*-
"""Reminder scheduling.

Reminders are handed to a backend named by the SPIDERS_REMINDER_BACKEND setting.
The default backend stores them in the Reminder table, where a delivery service
(push notifications, email, etc) can pick them up. Scheduling is best-effort:
callers that attach a reminder to a write must not let a failure here fail the
write.

"""
import datetime

from django.utils.module_loading import import_string

from spiders.conf import get_setting

HATCH_CATEGORY = "cocoon"
MOLT_CATEGORY = "molt"


class BaseReminderBackend:
    def schedule_at(
        self,
        remind_on: datetime.date,
        title: str,
        body: str,
        *,
        owner,
        category: str,
        event=None,
    ):
        """Schedule a reminder. Returns its id, or None if `remind_on` is in the past"""
        raise NotImplementedError

    def cancel_by_category(self, owner, category: str) -> int:
        """Cancel all pending reminders in `category`. Returns the number cancelled"""
        raise NotImplementedError


class DatabaseBackend(BaseReminderBackend):
    """Stores reminders in the database"""

    def schedule_at(self, remind_on, title, body, *, owner, category, event=None):
        from spiders.models import Reminder

        if remind_on < datetime.date.today():
            return None
        reminder = Reminder.objects.create(
            owner=owner,
            event=event,
            category=category,
            remind_on=remind_on,
            title=title,
            body=body,
        )
        return reminder.pk

    def cancel_by_category(self, owner, category):
        from spiders.models import Reminder

        count, _ = (
            Reminder.objects.pending()
            .filter(owner=owner, category=category)
            .delete()
        )
        return count


class DummyBackend(BaseReminderBackend):
    """Discards all reminders"""

    def schedule_at(self, remind_on, title, body, *, owner, category, event=None):
        return None

    def cancel_by_category(self, owner, category):
        return 0


def get_backend() -> BaseReminderBackend:
    return import_string(get_setting("SPIDERS_REMINDER_BACKEND"))()


def schedule_at(remind_on, title, body, *, owner, category, event=None):
    return get_backend().schedule_at(
        remind_on, title, body, owner=owner, category=category, event=event
    )


def cancel_by_category(owner, category) -> int:
    return get_backend().cancel_by_category(owner, category)
