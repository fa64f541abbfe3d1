# -*- mode: python -*-

import datetime
import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterable

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError, models, transaction
from django.db.models import Count
from django.urls import reverse
from django.utils import dateparse
from django.utils.translation import gettext_lazy as _

from spiders import reminders
from spiders.conf import get_setting

logger = logging.getLogger(__name__)

NameGenerator = Callable[[int, int], str]


def as_date(value) -> datetime.date | None:
    """Coerce an ISO-8601 string (or a date) to a date"""
    if value is None or isinstance(value, datetime.date):
        return value
    return dateparse.parse_date(value)


def expected_hatch_date(laid_on: datetime.date) -> datetime.date:
    """Default estimated hatch date for a cocoon laid on `laid_on`"""
    return as_date(laid_on) + datetime.timedelta(
        days=get_setting("SPIDERS_INCUBATION_DAYS")
    )


def offspring_name_generator(base: str) -> NameGenerator:
    """Returns a function that names the i-th of n offspring as `{base} #{i}`.

    The index is zero-padded to 1, 2, or 3 digits depending on how many
    offspring there are. The base is shortened if needed so that the name fits
    in Specimen.name.
    """

    def generate(index: int, total: int) -> str:
        width = 3 if total >= 100 else 2 if total >= 10 else 1
        suffix = f" #{index:0{width}d}"
        max_length = Specimen._meta.get_field("name").max_length
        return base[: max_length - len(suffix)].rstrip() + suffix

    return generate


def check_limit(limit: int) -> None:
    if limit < 1:
        raise ValidationError(_("Limit must be a positive integer"), code="invalid")


def check_hatched_count(hatched_count) -> None:
    max_count = get_setting("SPIDERS_MAX_HATCH_COUNT")
    if not isinstance(hatched_count, int) or not 1 <= hatched_count <= max_count:
        raise ValidationError(
            _("Hatched count must be between 1 and %(max)d"),
            code="invalid",
            params={"max": max_count},
        )


def _request_reminder(remind_on: datetime.date, title: str, body: str, **kwargs):
    """Schedule a reminder without letting a failure reach the caller"""
    try:
        return reminders.schedule_at(remind_on, title, body, **kwargs)
    except Exception:
        logger.exception("unable to schedule reminder %r for %s", title, remind_on)
        return None


class MatingResult(models.TextChoices):
    SUCCESS = "success", _("success")
    FAILURE = "failure", _("failure")
    IN_PROGRESS = "in_progress", _("in progress")
    UNKNOWN = "unknown", _("unknown")


class FoodType(models.TextChoices):
    CRICKET = "cricket", _("cricket")
    ROACH = "roach", _("roach")
    MEALWORM = "mealworm", _("mealworm")
    SUPERWORM = "superworm", _("superworm")
    OTHER = "other", _("other")


class FoodSize(models.TextChoices):
    SMALL = "small", _("small")
    MEDIUM = "medium", _("medium")
    LARGE = "large", _("large")


class BulkCreateResult:
    """Outcome of a bulk creation.

    Individual failures are collected in `errors` rather than raised, so a
    partial failure is a result and not an exception. The batch as a whole
    succeeded if at least one record was created.

    """

    class Outcome(models.TextChoices):
        SUCCESS = "success", _("all records created")
        PARTIAL = "partial", _("some records created")
        FAILURE = "failure", _("no records created")

    def __init__(self, quantity: int):
        self.quantity = quantity
        self.names: list[str] = []
        self.errors: list[dict[str, str]] = []
        self.created: list["Specimen"] = []
        self.cancelled = False

    @property
    def added(self) -> int:
        return len(self.names)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def succeeded(self) -> bool:
        return self.added > 0

    @property
    def outcome(self) -> Outcome:
        if self.added == 0:
            return self.Outcome.FAILURE
        elif self.added == self.quantity:
            return self.Outcome.SUCCESS
        else:
            return self.Outcome.PARTIAL

    def __repr__(self) -> str:
        return (
            f"<BulkCreateResult added={self.added} failed={self.failed} "
            f"({self.outcome})>"
        )


class SpecimenManager(models.Manager):
    def create_many(
        self,
        template: dict,
        quantity: int,
        name_generator: NameGenerator,
        *,
        cancel: threading.Event | None = None,
        throttle_every: int | None = None,
        throttle_seconds: float | None = None,
    ) -> BulkCreateResult:
        """Create `quantity` specimens from `template`, one at a time.

        Each specimen is named by `name_generator(i, quantity)` for i in
        1..quantity, validated, and saved in its own savepoint. A failure is
        recorded in the result and the loop moves on to the next record. The
        loop pauses every `throttle_every` records to limit the write rate, and
        stops early if `cancel` is set.

        """
        if quantity < 1:
            raise ValidationError(_("Quantity must be at least 1"), code="invalid")
        if throttle_every is None:
            throttle_every = get_setting("SPIDERS_BULK_THROTTLE_EVERY")
        if throttle_seconds is None:
            throttle_seconds = get_setting("SPIDERS_BULK_THROTTLE_SECONDS")
        result = BulkCreateResult(quantity)
        for index in range(1, quantity + 1):
            if cancel is not None and cancel.is_set():
                logger.info(
                    "bulk creation cancelled after %d of %d records",
                    index - 1,
                    quantity,
                )
                result.cancelled = True
                break
            name = name_generator(index, quantity)
            specimen = self.model(**(template | {"name": name}))
            try:
                specimen.full_clean()
                with transaction.atomic():
                    specimen.save(force_insert=True)
            except ValidationError as err:
                result.errors.append({"name": name, "error": "; ".join(err.messages)})
            except DatabaseError as err:
                logger.warning("unable to create specimen %s: %s", name, err)
                result.errors.append({"name": name, "error": str(err)})
            else:
                result.names.append(name)
                result.created.append(specimen)
            if throttle_every and index % throttle_every == 0 and index < quantity:
                time.sleep(throttle_seconds)
        if result.failed:
            logger.warning(
                "bulk creation finished with %d of %d records failed",
                result.failed,
                quantity,
            )
        return result

    def feed_many(
        self,
        specimens: Iterable["Specimen"],
        *,
        owner: settings.AUTH_USER_MODEL,
        date: datetime.date,
        food_type: str,
        food_size: str | None = None,
        quantity: int = 1,
        notes: str | None = None,
    ) -> list["Event"]:
        """Record the same feeding for several specimens.

        All of the events are tagged with a shared bulk id. Either all of them
        are recorded or none are.
        """
        bulk_id = uuid.uuid4().hex
        with transaction.atomic():
            return [
                specimen.record_feeding(
                    owner=owner,
                    date=date,
                    food_type=food_type,
                    food_size=food_size,
                    quantity=quantity,
                    notes=notes,
                    bulk_id=bulk_id,
                )
                for specimen in specimens
            ]


class SpecimenQuerySet(models.QuerySet):
    def owned_by(self, owner):
        return self.filter(owner=owner)

    def active(self):
        """Only living specimens still in the collection"""
        return self.filter(is_active=True)

    def offspring_of(self, specimen: "Specimen"):
        return self.filter(parent_female=specimen)

    def eligible_partners(self, specimen: "Specimen"):
        """Specimens that `specimen` can be mated with.

        Partners must be of the opposite sex (hermaphrodites can be paired with
        any sexed specimen), the same species, alive, and belong to the same
        owner.

        """
        Sex = Specimen.Sex
        if specimen.sex == Sex.MALE:
            sexes = (Sex.FEMALE, Sex.HERMAPHRODITE)
        elif specimen.sex == Sex.FEMALE:
            sexes = (Sex.MALE, Sex.HERMAPHRODITE)
        elif specimen.sex == Sex.HERMAPHRODITE:
            sexes = (Sex.MALE, Sex.FEMALE, Sex.HERMAPHRODITE)
        else:
            return self.none()
        return (
            self.active()
            .filter(owner=specimen.owner_id, species=specimen.species, sex__in=sexes)
            .exclude(uuid=specimen.uuid)
        )


class Specimen(models.Model):
    """Represents an individual animal in the collection"""

    class Sex(models.TextChoices):
        MALE = "male", _("male")
        FEMALE = "female", _("female")
        UNKNOWN_SEX = "unknown", _("unknown")
        HERMAPHRODITE = "hermaphrodite", _("hermaphrodite")

    class Stage(models.TextChoices):
        BABY = "baby", _("baby")
        JUVENILE = "juvenile", _("juvenile")
        SUBADULT = "subadult", _("subadult")
        ADULT = "adult", _("adult")
        SENIOR = "senior", _("senior")

    uuid = models.UUIDField(primary_key=True, default=uuid.uuid4, unique=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="specimens"
    )
    name = models.CharField(max_length=64)
    species = models.CharField(max_length=128)
    sex = models.CharField(max_length=16, choices=Sex.choices, default=Sex.UNKNOWN_SEX)
    stage = models.CharField(max_length=16, choices=Stage.choices, default=Stage.BABY)
    # denormalized from molting events for list views
    current_stage = models.PositiveIntegerField(
        default=1, help_text="current instar (L1, L2, ...)"
    )
    body_length = models.FloatField(
        blank=True, null=True, help_text="last measured body length (cm)"
    )
    measured_on = models.DateField(blank=True, null=True)
    weight = models.FloatField(blank=True, null=True, help_text="weight (g)")
    date_acquired = models.DateField(default=datetime.date.today)
    is_active = models.BooleanField(
        default=True, help_text="unset for specimens that died or were removed"
    )
    death_date = models.DateField(blank=True, null=True)
    parent_female = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="offspring",
    )
    cocoon = models.ForeignKey(
        "Event",
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="hatchlings",
        limit_choices_to={"category": "cocoon"},
        help_text="the cocoon this specimen hatched from",
    )
    # denormalized from feeding events
    last_fed_on = models.DateField(blank=True, null=True)
    last_food_type = models.CharField(max_length=16, blank=True)
    notes = models.TextField(blank=True)
    attributes = models.JSONField(
        default=dict,
        blank=True,
        help_text="specify additional attributes for the specimen",
    )
    created = models.DateTimeField(auto_now_add=True)
    updated = models.DateTimeField(auto_now=True)

    objects = SpecimenManager.from_queryset(SpecimenQuerySet)()

    def __str__(self) -> str:
        return self.name

    def short_uuid(self) -> str:
        return str(self.uuid).split("-")[0]

    def get_absolute_url(self):
        return reverse("spiders:specimen_api", kwargs={"pk": self.uuid})

    def sexed(self) -> bool:
        return self.sex != Specimen.Sex.UNKNOWN_SEX

    def check_owner(self, owner) -> None:
        """Raise PermissionDenied unless `owner` is the specimen's owner"""
        if owner is None or self.owner_id != owner.pk:
            raise PermissionDenied(_("Specimen belongs to another account"))

    def mating_roles(self, partner: "Specimen") -> tuple["Specimen", "Specimen"]:
        """Returns (male, female) for a mating between this specimen and `partner`"""
        if self.sex == Specimen.Sex.FEMALE or partner.sex == Specimen.Sex.MALE:
            return partner, self
        return self, partner

    def mark_deceased(self, date: datetime.date | None = None) -> None:
        self.is_active = False
        self.death_date = date or datetime.date.today()
        self.save(update_fields=["is_active", "death_date", "updated"])

    def record_molt(
        self,
        *,
        owner: settings.AUTH_USER_MODEL,
        date: datetime.date,
        previous_stage: int,
        new_stage: int,
        previous_length: float | None = None,
        new_length: float | None = None,
        notes: str | None = None,
        photos: list[dict] | None = None,
        wants_reminder: bool = False,
    ) -> "Event":
        """Record a molt and advance the specimen's stage.

        The event is appended first. The specimen's current stage (and length,
        if `new_length` is given) are updated in a second write. These are not
        atomic: if the second write fails the error propagates but the event is
        kept, and the denormalized fields stay stale until the next molt or a
        `rebuild_specimens` pass.

        """
        if previous_stage is None or new_stage is None:
            raise ValidationError(_("Both stages are required"), code="required")
        if new_stage <= previous_stage:
            raise ValidationError(
                _("New stage (L%(new)d) must be after the previous stage (L%(prev)d)"),
                code="invalid_stage",
                params={"new": new_stage, "prev": previous_stage},
            )
        event_data = {"previous_stage": previous_stage, "new_stage": new_stage}
        if previous_length is not None:
            event_data["previous_body_length"] = previous_length
        if new_length is not None:
            event_data["new_body_length"] = new_length
        event = Event.objects.append(
            specimen=self,
            owner=owner,
            category=Event.Category.MOLTING,
            title=f"Molt L{previous_stage} → L{new_stage}",
            date=date,
            description=notes,
            event_data=event_data,
            photos=photos,
        )
        self.current_stage = new_stage
        update_fields = ["current_stage", "updated"]
        if new_length is not None:
            self.body_length = new_length
            self.measured_on = event.date
            update_fields += ["body_length", "measured_on"]
        try:
            self.save(update_fields=update_fields)
        except DatabaseError:
            logger.error(
                "molt event %s recorded but stage of %s was not updated", event.pk, self
            )
            raise
        if wants_reminder:
            _request_reminder(
                as_date(event.date)
                + datetime.timedelta(days=get_setting("SPIDERS_MOLT_REMINDER_DAYS")),
                _("Post-molt check"),
                f"{self} molted to L{new_stage}. Time to offer food again.",
                owner=owner,
                category=reminders.MOLT_CATEGORY,
                event=event,
            )
        return event

    def delete_molt(self, event: "Event", owner: settings.AUTH_USER_MODEL) -> None:
        """Remove a molting event from this specimen's history.

        The specimen's current stage is not rolled back here; run
        `rebuild_specimens` to recompute it from the remaining events.
        """
        if event.specimen_id != self.pk or event.category != Event.Category.MOLTING:
            raise ValidationError(
                _("Not a molting event for %(name)s"), params={"name": self.name}
            )
        Event.objects.delete_event(event.pk, owner)

    def record_mating(
        self,
        *,
        owner: settings.AUTH_USER_MODEL,
        date: datetime.date,
        male: "Specimen",
        female: "Specimen",
        result: str,
        notes: str | None = None,
        photos: list[dict] | None = None,
    ) -> "Event":
        """Record a mating attempt between `male` and `female`.

        This specimen must be one of the pair and must be sexed. Two events with
        the same payload are written, one for each participant, so the mating
        shows up in both histories. The events share a `pair_id`. Returns the
        event for this specimen.

        """
        if not self.sexed():
            raise ValidationError(
                _("Sex of %(name)s must be known to record a mating"),
                code="unknown_sex",
                params={"name": self.name},
            )
        if male.pk == female.pk:
            raise ValidationError(_("A specimen cannot mate with itself"))
        if self.pk not in (male.pk, female.pk):
            raise ValidationError(_("Specimen must be one of the mating pair"))
        if result not in MatingResult.values:
            raise ValidationError(
                _("Unknown mating result %(result)s"), params={"result": result}
            )
        partner = female if self.pk == male.pk else male
        partner.check_owner(owner)
        fields = {
            "owner": owner,
            "category": Event.Category.MATING,
            "title": f"Mating - {MatingResult(result).label}",
            "date": date,
            "description": notes,
            "event_data": {
                "male_id": str(male.pk),
                "female_id": str(female.pk),
                "result": result,
                "successful": result == MatingResult.SUCCESS,
                "pair_id": uuid.uuid4().hex,
            },
            "photos": photos,
            "status": (
                Event.Status.IN_PROGRESS
                if result == MatingResult.IN_PROGRESS
                else Event.Status.COMPLETED
            ),
            "importance": Event.Importance.HIGH,
        }
        event = Event.objects.append(specimen=self, **fields)
        Event.objects.append(specimen=partner, **fields)
        return event

    def record_feeding(
        self,
        *,
        owner: settings.AUTH_USER_MODEL,
        date: datetime.date,
        food_type: str,
        food_size: str | None = None,
        quantity: int = 1,
        accepted: bool = True,
        notes: str | None = None,
        bulk_id: str | None = None,
    ) -> "Event":
        """Record a feeding and update the last-fed date if it is the latest"""
        event_data = {
            "food_type": food_type,
            "quantity": quantity,
            "accepted": accepted,
        }
        if food_size is not None:
            event_data["food_size"] = food_size
        if bulk_id is not None:
            event_data["bulk_id"] = bulk_id
        event = Event.objects.append(
            specimen=self,
            owner=owner,
            category=Event.Category.FEEDING,
            title=f"Fed {quantity} × {food_type}",
            date=date,
            description=notes,
            event_data=event_data,
            importance=Event.Importance.LOW,
        )
        fed_on = as_date(event.date)
        if self.last_fed_on is None or fed_on >= self.last_fed_on:
            self.last_fed_on = fed_on
            self.last_food_type = food_type
            self.save(update_fields=["last_fed_on", "last_food_type", "updated"])
        return event

    def mating_status(self) -> dict:
        from spiders.tools import mating_statuses

        return mating_statuses([self.pk])[self.pk]

    def cocoon_status(self) -> dict:
        from spiders.tools import cocoon_statuses

        return cocoon_statuses([self.pk])[self.pk]

    def last_molt_date(self) -> datetime.date | None:
        from spiders.tools import last_molt_dates

        return last_molt_dates([self.pk])[self.pk]

    class Meta:
        ordering = ["species", "name"]
        indexes = (
            models.Index(fields=["owner", "is_active"], name="owner_active_idx"),
        )


class EventManager(models.Manager):
    def append(
        self,
        *,
        specimen: Specimen,
        owner: settings.AUTH_USER_MODEL,
        category: str,
        title: str,
        date: datetime.date,
        event_data: dict | None = None,
        description: str | None = None,
        time: datetime.time | None = None,
        photos: list[dict] | None = None,
        status: str | None = None,
        importance: str | None = None,
    ) -> "Event":
        """Add an event to a specimen's history. Events are never overwritten."""
        specimen.check_owner(owner)
        if date is None:
            raise ValidationError(_("An event requires a date"), code="required")
        return self.create(
            specimen=specimen,
            owner=owner,
            category=category,
            title=title,
            date=as_date(date),
            time=time,
            description=description or "",
            event_data=event_data or {},
            photos=photos or [],
            status=status or Event.Status.COMPLETED,
            importance=importance or Event.Importance.MEDIUM,
        )

    def for_specimen(
        self,
        specimen: Specimen,
        owner: settings.AUTH_USER_MODEL,
        category: str | None = None,
        limit: int = 50,
    ) -> list["Event"]:
        """The specimen's most recent events, newest first"""
        check_limit(limit)
        specimen.check_owner(owner)
        qs = self.filter(specimen=specimen).for_category(category)
        return list(qs.order_by("-date", "-created")[:limit])

    def for_owner(
        self,
        owner: settings.AUTH_USER_MODEL,
        category: str | None = None,
        limit: int = 50,
    ) -> list["Event"]:
        """The most recent events for all of the owner's specimens, newest first"""
        check_limit(limit)
        qs = self.filter(owner=owner).for_category(category)
        return list(qs.order_by("-date", "-created")[:limit])

    def get_for_owner(self, pk: int, owner: settings.AUTH_USER_MODEL) -> "Event":
        """Returns the event with primary key `pk`.

        Raises DoesNotExist if there is no such event and PermissionDenied if
        it belongs to another account.
        """
        event = self.get(pk=pk)
        if owner is None or event.owner_id != owner.pk:
            raise PermissionDenied(_("Event belongs to another account"))
        return event

    def update_event(
        self, pk: int, owner: settings.AUTH_USER_MODEL, **fields
    ) -> "Event":
        """Update a recorded event.

        Only the status and hatched count of a cocoon may change, and the new
        status must be a legal transition. A hatched count is required when the
        status is `hatched` and not accepted otherwise. This does not create
        any offspring; use Cocoon.hatch() for that.
        """
        allowed = {"cocoon_status", "hatched_count"}
        if "cocoon_status" not in fields or not set(fields) <= allowed:
            raise ValidationError(
                _("Only the cocoon status and hatched count of an event can be updated")
            )
        if fields["cocoon_status"] == Cocoon.State.HATCHED:
            check_hatched_count(fields.get("hatched_count"))
        elif fields.get("hatched_count") is not None:
            raise ValidationError(
                _("A hatched count is only allowed for hatched cocoons"),
                code="invalid",
            )
        event = self.get_for_owner(pk, owner)
        if event.category != Event.Category.COCOON:
            raise ValidationError(_("Only cocoon events can be updated"))
        cocoon = Cocoon.objects.get(pk=event.pk)
        return cocoon.set_state(
            fields["cocoon_status"], hatched_count=fields.get("hatched_count")
        )

    def delete_event(self, pk: int, owner: settings.AUTH_USER_MODEL) -> None:
        self.get_for_owner(pk, owner).delete()


class EventQuerySet(models.QuerySet):
    def with_related(self):
        return self.select_related("specimen", "owner")

    def for_category(self, category: str | None):
        if category is None:
            return self
        return self.filter(category=category)

    def count_by_category(self):
        return self.values("category").annotate(count=Count("id"))


class Event(models.Model):
    """Represents something that happened to a specimen.

    Events are immutable once recorded. The one exception is cocoons (see
    Cocoon), whose status is updated in place as the cocoon develops.

    """

    class Category(models.TextChoices):
        MOLTING = "molting", _("molting")
        FEEDING = "feeding", _("feeding")
        CONTAINER_CHANGE = "container_change", _("container change")
        MATING = "mating", _("mating")
        COCOON = "cocoon", _("cocoon")
        MALE_MATURATION = "male_maturation", _("male maturation")
        PHOTO = "photo", _("photo")

    class Status(models.TextChoices):
        COMPLETED = "completed", _("completed")
        SCHEDULED = "scheduled", _("scheduled")
        CANCELLED = "cancelled", _("cancelled")
        IN_PROGRESS = "in_progress", _("in progress")

    class Importance(models.TextChoices):
        LOW = "low", _("low")
        MEDIUM = "medium", _("medium")
        HIGH = "high", _("high")
        CRITICAL = "critical", _("critical")

    id = models.AutoField(primary_key=True)
    specimen = models.ForeignKey("Specimen", on_delete=models.CASCADE)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="+"
    )
    category = models.CharField(max_length=20, choices=Category.choices)
    title = models.CharField(max_length=128)
    description = models.TextField(blank=True)
    date = models.DateField()
    time = models.TimeField(blank=True, null=True)
    event_data = models.JSONField(
        default=dict, blank=True, help_text="data specific to the category of event"
    )
    photos = models.JSONField(
        default=list, blank=True, help_text="attached photos (id, url, date, is_main)"
    )
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.COMPLETED
    )
    importance = models.CharField(
        max_length=16, choices=Importance.choices, default=Importance.MEDIUM
    )
    created = models.DateTimeField(auto_now_add=True)
    updated = models.DateTimeField(auto_now=True)

    objects = EventManager.from_queryset(EventQuerySet)()

    def __str__(self) -> str:
        return f"{self.specimen}: {self.title} on {self.date}"

    # the parts of a saved cocoon that may change as it develops
    MUTABLE_FIELDS = frozenset(("event_data", "title", "status", "updated"))
    MUTABLE_DATA_KEYS = frozenset(("cocoon_status", "hatched_count"))

    def save(self, *args, **kwargs):
        if not self._state.adding:
            self.check_update(kwargs.get("update_fields"))
        super().save(*args, **kwargs)

    def check_update(self, update_fields) -> None:
        """Raises ValidationError unless saving this event would only change
        the status or hatched count of a cocoon"""
        immutable = ValidationError(_("Recorded events cannot be changed"))
        if self.category != Event.Category.COCOON:
            raise immutable
        if update_fields is None or not set(update_fields) <= self.MUTABLE_FIELDS:
            raise immutable
        stored = Event.objects.filter(pk=self.pk).values_list("category", "event_data")
        category, event_data = stored.get()
        if category != Event.Category.COCOON:
            raise immutable

        def fixed(data: dict) -> dict:
            return {k: v for k, v in data.items() if k not in self.MUTABLE_DATA_KEYS}

        if fixed(event_data) != fixed(self.event_data):
            raise immutable

    class Meta:
        ordering = ("-date", "-created")
        indexes = (
            models.Index(fields=["specimen", "category"], name="specimen_category_idx"),
            models.Index(fields=["owner", "category"], name="owner_category_idx"),
            models.Index(fields=["specimen", "date"], name="specimen_date_idx"),
        )
        get_latest_by = ("date", "created")


class CocoonManager(EventManager):
    def get_queryset(self):
        return super().get_queryset().filter(category=Event.Category.COCOON)

    def lay(
        self,
        female: Specimen,
        *,
        owner: settings.AUTH_USER_MODEL,
        date: datetime.date,
        estimated_hatch_date: datetime.date | None = None,
        egg_count: int | None = None,
        wants_reminder: bool = False,
        notes: str | None = None,
        photos: list[dict] | None = None,
    ) -> "Cocoon":
        """Record a cocoon laid by `female`.

        If `estimated_hatch_date` is not given, it is computed from `date` and
        the SPIDERS_INCUBATION_DAYS setting. The estimate is stored with the
        event and is not recomputed afterwards. If `wants_reminder` is set, a
        reminder is requested a few days before the estimated hatch; failing to
        schedule it does not prevent the cocoon from being recorded.

        """
        if female.sex not in (Specimen.Sex.FEMALE, Specimen.Sex.HERMAPHRODITE):
            raise ValidationError(
                _("%(name)s is not a female"), params={"name": female.name}
            )
        date = as_date(date)
        if date is None:
            raise ValidationError(_("A cocoon requires a date"), code="required")
        if estimated_hatch_date is None:
            estimated_hatch_date = expected_hatch_date(date)
        estimated_hatch_date = as_date(estimated_hatch_date)
        event_data = {
            "female_id": str(female.pk),
            "cocoon_status": Cocoon.State.LAID,
            "estimated_hatch_date": estimated_hatch_date.isoformat(),
        }
        if egg_count is not None:
            event_data["egg_count"] = egg_count
        cocoon = self.append(
            specimen=female,
            owner=owner,
            category=Event.Category.COCOON,
            title=Cocoon.title_for(Cocoon.State.LAID),
            date=date,
            description=notes,
            event_data=event_data,
            photos=photos,
            status=Event.Status.IN_PROGRESS,
            importance=Event.Importance.HIGH,
        )
        if wants_reminder:
            days = get_setting("SPIDERS_HATCH_REMINDER_DAYS")
            _request_reminder(
                estimated_hatch_date - datetime.timedelta(days=days),
                _("Cocoon hatch approaching"),
                f"The cocoon of {female} is expected to hatch "
                f"on {estimated_hatch_date}",
                owner=owner,
                category=reminders.HATCH_CATEGORY,
                event=cocoon,
            )
        return cocoon

    def upcoming_hatches(
        self,
        owner: settings.AUTH_USER_MODEL,
        *,
        days_ahead: int = 14,
        lookback_days: int = 0,
        today: datetime.date | None = None,
    ) -> list["Cocoon"]:
        """Active cocoons expected to hatch between `lookback_days` ago and
        `days_ahead` from now, soonest first"""
        today = today or datetime.date.today()
        since = today - datetime.timedelta(days=lookback_days)
        until = today + datetime.timedelta(days=days_ahead)
        qs = self.filter(owner=owner, status=Event.Status.IN_PROGRESS).select_related(
            "specimen"
        )
        upcoming = [
            cocoon
            for cocoon in qs
            if cocoon.estimated_hatch_date is not None
            and since <= cocoon.estimated_hatch_date <= until
        ]
        return sorted(upcoming, key=lambda cocoon: cocoon.estimated_hatch_date)


class Cocoon(Event):
    """A cocoon (egg sac) laid by a female.

    Cocoons start out laid, may be moved to incubation, and end either hatched
    or failed. Both end states are final. Hatching a cocoon creates a specimen
    record for each of the hatchlings.

    """

    class State(models.TextChoices):
        LAID = "laid", _("laid")
        INCUBATING = "incubating", _("incubating")
        HATCHED = "hatched", _("hatched")
        FAILED = "failed", _("failed")

    TRANSITIONS = {
        State.LAID: (State.INCUBATING, State.HATCHED, State.FAILED),
        State.INCUBATING: (State.HATCHED, State.FAILED),
    }

    objects = CocoonManager.from_queryset(EventQuerySet)()

    @classmethod
    def title_for(cls, state: str) -> str:
        return f"Cocoon - {cls.State(state).label}"

    @property
    def state(self) -> str | None:
        return self.event_data.get("cocoon_status")

    @property
    def estimated_hatch_date(self) -> datetime.date | None:
        return as_date(self.event_data.get("estimated_hatch_date"))

    @property
    def hatched_count(self) -> int | None:
        return self.event_data.get("hatched_count")

    def is_active(self) -> bool:
        return self.state in (Cocoon.State.LAID, Cocoon.State.INCUBATING)

    def set_state(self, state: str, *, hatched_count: int | None = None) -> "Cocoon":
        """Move the cocoon to `state`, raising ValidationError if not allowed"""
        with transaction.atomic():
            stored = Cocoon.objects.select_for_update().get(pk=self.pk)
            current = stored.state
            if state not in self.TRANSITIONS.get(current, ()):
                self.event_data = stored.event_data
                raise ValidationError(
                    _("Cannot change a cocoon from %(current)s to %(state)s"),
                    code="invalid_transition",
                    params={"current": current, "state": state},
                )
            self.event_data = stored.event_data | {"cocoon_status": state}
            if hatched_count is not None:
                self.event_data["hatched_count"] = hatched_count
            self.title = self.title_for(state)
            if state in (Cocoon.State.HATCHED, Cocoon.State.FAILED):
                self.status = Event.Status.COMPLETED
            else:
                self.status = Event.Status.IN_PROGRESS
            self.save(update_fields=["event_data", "title", "status", "updated"])
        return self

    def advance_to_incubating(self) -> "Cocoon":
        return self.set_state(Cocoon.State.INCUBATING)

    def mark_failed(self) -> "Cocoon":
        return self.set_state(Cocoon.State.FAILED)

    def offspring_template(self) -> dict:
        """Fields shared by all of the hatchlings from this cocoon"""
        mother = self.specimen
        return {
            "owner_id": mother.owner_id,
            "species": mother.species,
            "sex": Specimen.Sex.UNKNOWN_SEX,
            "stage": Specimen.Stage.BABY,
            "current_stage": 1,
            "parent_female": mother,
            "cocoon": self,
            "date_acquired": datetime.date.today(),
            "notes": f"Offspring of {mother}",
        }

    def hatch(
        self,
        hatched_count: int,
        *,
        name_generator: NameGenerator | None = None,
        cancel: threading.Event | None = None,
    ) -> BulkCreateResult:
        """Mark the cocoon as hatched and create a specimen for each hatchling.

        The status change and the creation of the offspring are separate
        steps. If creating the offspring fails, partly or completely, the
        cocoon remains hatched; the returned result reports what was created.

        """
        check_hatched_count(hatched_count)
        self.set_state(Cocoon.State.HATCHED, hatched_count=hatched_count)
        if name_generator is None:
            name_generator = offspring_name_generator(self.specimen.species)
        result = Specimen.objects.create_many(
            self.offspring_template(), hatched_count, name_generator, cancel=cancel
        )
        if not result.succeeded:
            logger.error("cocoon %s hatched but no offspring were created", self.pk)
        return result

    class Meta:
        proxy = True


class ReminderQuerySet(models.QuerySet):
    def pending(self, on_date: datetime.date | None = None):
        refdate = on_date or datetime.date.today()
        return self.filter(remind_on__gte=refdate)


class Reminder(models.Model):
    """A reminder for the owner, delivered on `remind_on` by an external service"""

    id = models.AutoField(primary_key=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="+"
    )
    event = models.ForeignKey(
        "Event",
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="reminders",
    )
    category = models.CharField(max_length=32)
    remind_on = models.DateField()
    title = models.CharField(max_length=128)
    body = models.TextField(blank=True)
    created = models.DateTimeField(auto_now_add=True)

    objects = ReminderQuerySet.as_manager()

    def __str__(self) -> str:
        return f"{self.title} on {self.remind_on}"

    class Meta:
        ordering = ("remind_on",)
