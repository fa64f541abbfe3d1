# -*- mode: python -*-
from django.contrib import admin

from spiders import models


class SpecimenAdmin(admin.ModelAdmin):
    fields = (
        "owner",
        "name",
        "species",
        "sex",
        "stage",
        "current_stage",
        "body_length",
        "weight",
        "date_acquired",
        "is_active",
        "death_date",
        "parent_female",
        "notes",
        "attributes",
    )
    list_display = ("name", "species", "uuid", "sex", "stage", "current_stage", "owner")
    list_filter = ("species", "sex", "stage", "is_active")
    search_fields = ("name", "species", "uuid")
    autocomplete_fields = ("parent_female",)


class EventAdmin(admin.ModelAdmin):
    """Events can be inspected or removed, but not edited"""

    date_hierarchy = "date"
    list_display = ("specimen", "date", "category", "title", "status", "owner")
    list_filter = ("category", "status", "importance")
    search_fields = ("title", "description")
    readonly_fields = (
        "specimen",
        "owner",
        "category",
        "title",
        "description",
        "date",
        "time",
        "event_data",
        "photos",
        "status",
        "importance",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class CocoonAdmin(EventAdmin):
    list_display = ("specimen", "date", "state", "estimated_hatch_date", "owner")
    list_filter = ("status",)


class ReminderAdmin(admin.ModelAdmin):
    date_hierarchy = "remind_on"
    list_display = ("title", "remind_on", "category", "owner")
    list_filter = ("category",)


admin.site.register(models.Specimen, SpecimenAdmin)
admin.site.register(models.Event, EventAdmin)
admin.site.register(models.Cocoon, CocoonAdmin)
admin.site.register(models.Reminder, ReminderAdmin)
