# -*- mode: python -*-
"""App settings. Any of these can be overridden in the project's settings module."""
from django.conf import settings

DEFAULTS = {
    # days from laying to the default estimated hatch date
    "SPIDERS_INCUBATION_DAYS": 63,
    # hatch reminders fire this many days before the estimated hatch date
    "SPIDERS_HATCH_REMINDER_DAYS": 3,
    # post-molt reminders fire this many days after the molt
    "SPIDERS_MOLT_REMINDER_DAYS": 7,
    # maximum number of ids in a single "any of" query
    "SPIDERS_QUERY_CHUNK_SIZE": 10,
    # bulk creation pauses after every N records
    "SPIDERS_BULK_THROTTLE_EVERY": 10,
    "SPIDERS_BULK_THROTTLE_SECONDS": 0.1,
    "SPIDERS_MAX_HATCH_COUNT": 2000,
    "SPIDERS_REMINDER_BACKEND": "spiders.reminders.DatabaseBackend",
}


def get_setting(name: str):
    return getattr(settings, name, DEFAULTS[name])
