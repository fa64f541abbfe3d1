# -*- mode: python -*-

from django.apps import AppConfig


class SpidersConfig(AppConfig):
    name = "spiders"
    default_auto_field = "django.db.models.AutoField"

    def ready(self):
        from spiders import triggers  # noqa: F401
