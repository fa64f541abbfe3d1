# -*- mode: python -*-
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from spiders.models import Cocoon, Event, Specimen

# sent with specimen_id, owner_id and category whenever a specimen's event log
# changes, so that cached listings and status badges can be invalidated
event_log_changed = Signal()


@receiver([post_save, post_delete], sender=Event)
@receiver([post_save, post_delete], sender=Cocoon)
def notify_on_event_change(sender, instance, **kwargs):
    """Announce that an event was added, changed or removed"""
    event_log_changed.send(
        sender=Event,
        specimen_id=instance.specimen_id,
        owner_id=instance.owner_id,
        category=instance.category,
    )


@receiver(post_delete, sender=Specimen)
def notify_on_specimen_delete(sender, instance, **kwargs):
    """Announce that a specimen and its whole history are gone"""
    event_log_changed.send(
        sender=Specimen,
        specimen_id=instance.pk,
        owner_id=instance.owner_id,
        category=None,
    )
