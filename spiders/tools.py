# -*- mode: python -*-
"""Batch queries over the event log.

Status badges in list views need the most recent event of some category for
many specimens at once. The queries here look up ids in fixed-size chunks and
merge the results, keeping the latest event for each specimen.

"""
import datetime
import logging
import uuid
from collections.abc import Callable, Iterable, Sequence

from django.db.models import Q

from spiders.conf import get_setting
from spiders.models import Event, Specimen, as_date

logger = logging.getLogger(__name__)


def chunked(items: Sequence, size: int) -> list[Sequence]:
    """Split items into consecutive slices of at most `size` items"""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [items[i : i + size] for i in range(0, len(items), size)]


def event_sort_key(event: Event) -> tuple:
    """Orders events by date, then time of day, then id"""
    return (
        as_date(event.date).isoformat(),
        event.time.isoformat() if event.time else "",
        event.pk,
    )


def merge_latest(current: dict, events: Iterable[Event]) -> dict:
    """Merge events into a mapping of specimen id to latest event.

    Returns a new dict; `current` is not modified. The result does not depend
    on the order in which events (or batches of events) are merged.
    """
    merged = dict(current)
    for event in events:
        previous = merged.get(event.specimen_id)
        if previous is None or event_sort_key(event) > event_sort_key(previous):
            merged[event.specimen_id] = event
    return merged


def _normalize_ids(specimen_ids: Iterable) -> list[uuid.UUID]:
    seen = {}
    for value in specimen_ids:
        key = value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        seen.setdefault(key, None)
    return list(seen)


def latest_events(
    specimen_ids: Iterable,
    category: str,
    *,
    owner=None,
    only: Q | None = None,
    chunk_size: int | None = None,
) -> dict[uuid.UUID, Event]:
    """Returns the most recent event in `category` for each of the specimens.

    Specimens without a matching event are not included. One query is issued
    for every `chunk_size` ids (SPIDERS_QUERY_CHUNK_SIZE by default). If
    `owner` is given, only events recorded by that account are considered.
    `only` can be used to restrict the events further.

    """
    ids = _normalize_ids(specimen_ids)
    if not ids:
        return {}
    chunk_size = chunk_size or get_setting("SPIDERS_QUERY_CHUNK_SIZE")
    qs = Event.objects.filter(category=category)
    if owner is not None:
        qs = qs.filter(owner=owner)
    if only is not None:
        qs = qs.filter(only)
    result = {}
    for chunk in chunked(ids, chunk_size):
        result = merge_latest(result, qs.filter(specimen_id__in=chunk))
    return result


def batch_status(
    specimen_ids: Iterable,
    category: str,
    project: Callable[[Event | None], object],
    **kwargs,
) -> dict:
    """Apply `project` to the latest event in `category` for each specimen.

    Every requested id is in the result; specimens with no matching event get
    `project(None)`.
    """
    ids = _normalize_ids(specimen_ids)
    latest = latest_events(ids, category, **kwargs)
    return {pk: project(latest.get(pk)) for pk in ids}


def project_mating(event: Event | None) -> dict:
    if event is None:
        return {
            "has_mating": False,
            "last_mating_date": None,
            "last_mating_result": None,
        }
    return {
        "has_mating": True,
        "last_mating_date": as_date(event.date),
        "last_mating_result": event.event_data.get("result"),
    }


def project_cocoon(event: Event | None) -> dict:
    if event is None:
        return {
            "has_cocoon": False,
            "last_cocoon_date": None,
            "cocoon_status": None,
            "estimated_hatch_date": None,
        }
    return {
        "has_cocoon": True,
        "last_cocoon_date": as_date(event.date),
        "cocoon_status": event.event_data.get("cocoon_status"),
        "estimated_hatch_date": as_date(event.event_data.get("estimated_hatch_date")),
    }


def project_date(event: Event | None) -> datetime.date | None:
    return None if event is None else as_date(event.date)


def mating_statuses(specimen_ids: Iterable, **kwargs) -> dict:
    return batch_status(specimen_ids, Event.Category.MATING, project_mating, **kwargs)


def cocoon_statuses(specimen_ids: Iterable, **kwargs) -> dict:
    """Only active cocoons (laid or incubating) count"""
    return batch_status(
        specimen_ids,
        Event.Category.COCOON,
        project_cocoon,
        only=Q(status=Event.Status.IN_PROGRESS),
        **kwargs,
    )


def last_molt_dates(specimen_ids: Iterable, **kwargs) -> dict:
    return batch_status(specimen_ids, Event.Category.MOLTING, project_date, **kwargs)


def last_feeding_dates(specimen_ids: Iterable, **kwargs) -> dict:
    return batch_status(specimen_ids, Event.Category.FEEDING, project_date, **kwargs)


PROJECTIONS = {
    "mating": mating_statuses,
    "cocoon": cocoon_statuses,
    "molting": last_molt_dates,
    "feeding": last_feeding_dates,
}


def photos_from_urls(urls: Iterable[str], date: datetime.date) -> list[dict]:
    """Build photo attachments for an event. The first photo is the main one."""
    date = as_date(date)
    return [
        {
            "id": uuid.uuid4().hex,
            "url": url,
            "date": date.isoformat() if date else None,
            "is_main": i == 0,
        }
        for i, url in enumerate(urls)
    ]


def rebuild_denormalized(specimens: Sequence[Specimen]) -> list[Specimen]:
    """Recompute the fields that specimens copy from their event logs.

    Stage, body length, and last feeding are set from the latest molting and
    feeding events. The last feeding and measurement date are cleared if no
    matching event remains. Stage and body length may also be entered by hand,
    so they are left alone when there are no molts. Returns the specimens that
    were changed.

    """
    ids = [s.pk for s in specimens]
    molts = latest_events(ids, Event.Category.MOLTING)
    measured = latest_events(
        ids, Event.Category.MOLTING, only=Q(event_data__has_key="new_body_length")
    )
    feedings = latest_events(ids, Event.Category.FEEDING)
    changed = []
    for specimen in specimens:
        fields = {}
        if (molt := molts.get(specimen.pk)) is not None:
            new_stage = molt.event_data.get("new_stage")
            if new_stage is not None:
                fields["current_stage"] = new_stage
        if (molt := measured.get(specimen.pk)) is not None:
            fields["body_length"] = molt.event_data["new_body_length"]
            fields["measured_on"] = as_date(molt.date)
        else:
            fields["measured_on"] = None
        if (feeding := feedings.get(specimen.pk)) is not None:
            fields["last_fed_on"] = as_date(feeding.date)
            fields["last_food_type"] = feeding.event_data.get("food_type", "")
        else:
            fields["last_fed_on"] = None
            fields["last_food_type"] = ""
        fields = {k: v for k, v in fields.items() if getattr(specimen, k) != v}
        if not fields:
            continue
        for name, value in fields.items():
            setattr(specimen, name, value)
        specimen.save(update_fields=[*fields, "updated"])
        logger.info("rebuilt %s for %s", ", ".join(fields), specimen)
        changed.append(specimen)
    return changed

