# -*- mode: python -*-
from django_filters import rest_framework as filters

from spiders.models import Event, Specimen


class SpecimenFilter(filters.FilterSet):
    uuid = filters.CharFilter(field_name="uuid", lookup_expr="istartswith")
    name = filters.CharFilter(field_name="name", lookup_expr="icontains")
    species = filters.CharFilter(field_name="species", lookup_expr="icontains")
    active = filters.BooleanFilter(field_name="is_active")
    parent = filters.CharFilter(
        field_name="parent_female__uuid", lookup_expr="istartswith"
    )
    min_stage = filters.NumberFilter(field_name="current_stage", lookup_expr="gte")

    class Meta:
        model = Specimen
        fields = ["sex", "stage"]


class EventFilter(filters.FilterSet):
    specimen = filters.CharFilter(
        field_name="specimen__uuid", lookup_expr="istartswith"
    )
    species = filters.CharFilter(
        field_name="specimen__species", lookup_expr="icontains"
    )
    title = filters.CharFilter(field_name="title", lookup_expr="icontains")
    description = filters.CharFilter(field_name="description", lookup_expr="icontains")

    class Meta:
        model = Event
        fields = {
            "category": ["exact"],
            "status": ["exact"],
            "importance": ["exact"],
            "date": ["exact", "year", "range", "gte", "lte"],
        }
