# -*- mode: python -*-

from rest_framework import serializers

from spiders.conf import get_setting
from spiders.models import (
    Cocoon,
    Event,
    FoodSize,
    FoodType,
    MatingResult,
    Specimen,
    expected_hatch_date,
)
from spiders.tools import photos_from_urls


class SpecimenSerializer(serializers.ModelSerializer):
    parent_female = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Specimen
        fields = (
            "name",
            "uuid",
            "species",
            "sex",
            "stage",
            "current_stage",
            "body_length",
            "measured_on",
            "weight",
            "date_acquired",
            "is_active",
            "death_date",
            "parent_female",
            "last_fed_on",
            "last_food_type",
            "notes",
            "attributes",
        )
        read_only_fields = (
            "uuid",
            "measured_on",
            "is_active",
            "death_date",
            "last_fed_on",
            "last_food_type",
        )


class SpecimenDetailSerializer(SpecimenSerializer):
    cocoon = serializers.PrimaryKeyRelatedField(read_only=True)
    mating_status = serializers.SerializerMethodField()
    cocoon_status = serializers.SerializerMethodField()
    last_molt_date = serializers.SerializerMethodField()

    def get_mating_status(self, obj):
        return obj.mating_status()

    def get_cocoon_status(self, obj):
        return obj.cocoon_status()

    def get_last_molt_date(self, obj):
        return obj.last_molt_date()

    class Meta(SpecimenSerializer.Meta):
        fields = SpecimenSerializer.Meta.fields + (
            "cocoon",
            "mating_status",
            "cocoon_status",
            "last_molt_date",
            "created",
            "updated",
        )


class PhotoSerializer(serializers.Serializer):
    id = serializers.CharField()
    url = serializers.URLField()
    date = serializers.DateField(allow_null=True)
    is_main = serializers.BooleanField(default=False)


class EventSerializer(serializers.ModelSerializer):
    specimen = serializers.PrimaryKeyRelatedField(read_only=True)
    photos = PhotoSerializer(many=True, read_only=True)

    class Meta:
        model = Event
        fields = (
            "id",
            "specimen",
            "category",
            "title",
            "description",
            "date",
            "time",
            "event_data",
            "photos",
            "status",
            "importance",
            "created",
        )
        read_only_fields = fields


class CocoonEventSerializer(EventSerializer):
    specimen_name = serializers.CharField(source="specimen.name", read_only=True)
    cocoon_status = serializers.CharField(source="state", read_only=True)
    estimated_hatch_date = serializers.DateField(read_only=True)
    hatched_count = serializers.IntegerField(read_only=True)

    class Meta(EventSerializer.Meta):
        model = Cocoon
        fields = EventSerializer.Meta.fields + (
            "specimen_name",
            "cocoon_status",
            "estimated_hatch_date",
            "hatched_count",
        )


class EventInputSerializer(serializers.Serializer):
    """Fields common to all of the actions that record an event"""

    date = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    photo_urls = serializers.ListField(
        child=serializers.URLField(), required=False, default=list
    )

    def validate(self, data):
        data["photos"] = photos_from_urls(data.pop("photo_urls"), data["date"])
        return data


class MoltSerializer(EventInputSerializer):
    previous_stage = serializers.IntegerField(min_value=1, required=False)
    new_stage = serializers.IntegerField(min_value=2)
    previous_length = serializers.FloatField(
        min_value=0, required=False, allow_null=True
    )
    new_length = serializers.FloatField(min_value=0, required=False, allow_null=True)
    wants_reminder = serializers.BooleanField(default=False)

    def validate(self, data):
        data = super().validate(data)
        if "previous_stage" not in data:
            data["previous_stage"] = self.context["specimen"].current_stage
        if data["new_stage"] <= data["previous_stage"]:
            raise serializers.ValidationError(
                {"new_stage": "New stage must be after the previous stage"}
            )
        if "previous_length" not in data:
            data["previous_length"] = self.context["specimen"].body_length
        return data


class MatingSerializer(EventInputSerializer):
    partner = serializers.UUIDField()
    result = serializers.ChoiceField(choices=MatingResult.choices)

    def validate_partner(self, value):
        specimen = self.context["specimen"]
        if not specimen.sexed():
            raise serializers.ValidationError(
                "The sex of this specimen must be known to record a mating"
            )
        try:
            return Specimen.objects.eligible_partners(specimen).get(uuid=value)
        except Specimen.DoesNotExist:
            raise serializers.ValidationError("Not an eligible partner") from None


class CocoonSerializer(EventInputSerializer):
    estimated_hatch_date = serializers.DateField(required=False)
    egg_count = serializers.IntegerField(min_value=0, required=False)
    wants_reminder = serializers.BooleanField(default=False)

    def validate(self, data):
        data = super().validate(data)
        # the default follows the laid date until the cocoon is recorded
        if data.get("estimated_hatch_date") is None:
            data["estimated_hatch_date"] = expected_hatch_date(data["date"])
        elif data["estimated_hatch_date"] < data["date"]:
            raise serializers.ValidationError(
                {"estimated_hatch_date": "Cocoon cannot hatch before it was laid"}
            )
        return data


class HatchSerializer(serializers.Serializer):
    hatched_count = serializers.IntegerField(min_value=1)
    base_name = serializers.CharField(required=False, max_length=56)

    def validate_hatched_count(self, value):
        max_count = get_setting("SPIDERS_MAX_HATCH_COUNT")
        if value > max_count:
            raise serializers.ValidationError(
                f"Hatched count must be between 1 and {max_count}"
            )
        return value


class FeedingSerializer(serializers.Serializer):
    date = serializers.DateField()
    food_type = serializers.ChoiceField(choices=FoodType.choices)
    food_size = serializers.ChoiceField(choices=FoodSize.choices, required=False)
    quantity = serializers.IntegerField(min_value=1, default=1)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class SingleFeedingSerializer(FeedingSerializer):
    accepted = serializers.BooleanField(default=True)


class BulkFeedingSerializer(FeedingSerializer):
    specimens = serializers.ListField(child=serializers.UUIDField(), min_length=1)

    def validate_specimens(self, value):
        qs = Specimen.objects.owned_by(self.context["owner"]).filter(uuid__in=value)
        found = {specimen.uuid: specimen for specimen in qs}
        missing = [str(pk) for pk in value if pk not in found]
        if missing:
            raise serializers.ValidationError(
                f"Unknown specimens: {', '.join(missing)}"
            )
        return list(found.values())


class DeceasedSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class BulkCreateResultSerializer(serializers.Serializer):
    added = serializers.IntegerField()
    failed = serializers.IntegerField()
    names = serializers.ListField(child=serializers.CharField())
    errors = serializers.ListField(child=serializers.DictField())
    cancelled = serializers.BooleanField()
    outcome = serializers.CharField()
    succeeded = serializers.BooleanField()
