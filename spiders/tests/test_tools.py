# -*- mode: python -*-
import datetime
import random
import uuid

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from spiders import tools
from spiders.models import Cocoon, Event, FoodType, MatingResult, Specimen

User = get_user_model()


def make_event(specimen_id, date, pk, time=None):
    """An unsaved event, for testing merges"""
    return Event(
        pk=pk,
        specimen_id=specimen_id,
        category=Event.Category.FEEDING,
        date=date,
        time=time,
    )


class ChunkedTests(TestCase):
    def test_chunked(self):
        self.assertEqual(tools.chunked(list(range(25)), 10)[-1], [20, 21, 22, 23, 24])
        self.assertEqual(len(tools.chunked(list(range(25)), 10)), 3)
        self.assertEqual(tools.chunked(list(range(10)), 10), [list(range(10))])
        self.assertEqual(tools.chunked([], 10), [])

    def test_chunk_size_must_be_positive(self):
        with self.assertRaises(ValueError):
            tools.chunked([1, 2, 3], 0)


class MergeLatestTests(TestCase):
    def setUp(self):
        self.ids = [uuid.uuid4() for _ in range(5)]
        rng = random.Random(42)
        self.events = []
        pk = 1
        for specimen_id in self.ids:
            for _ in range(4):
                date = datetime.date(2024, 1, 1) + datetime.timedelta(
                    days=rng.randint(0, 5)
                )
                self.events.append(make_event(specimen_id, date, pk))
                pk += 1

    def merged_pks(self, merged):
        return {specimen_id: event.pk for specimen_id, event in merged.items()}

    def test_keeps_latest(self):
        merged = tools.merge_latest({}, self.events)
        self.assertEqual(set(merged), set(self.ids))
        for specimen_id, event in merged.items():
            candidates = [e for e in self.events if e.specimen_id == specimen_id]
            self.assertEqual(event.date, max(e.date for e in candidates))

    def test_merge_order_does_not_matter(self):
        expected = self.merged_pks(tools.merge_latest({}, self.events))
        rng = random.Random(7)
        for _ in range(10):
            events = list(self.events)
            rng.shuffle(events)
            merged = {}
            for chunk in tools.chunked(events, 3):
                merged = tools.merge_latest(merged, chunk)
            self.assertEqual(self.merged_pks(merged), expected)

    def test_does_not_modify_input(self):
        current = tools.merge_latest({}, self.events[:2])
        before = dict(current)
        tools.merge_latest(current, self.events[2:])
        self.assertEqual(current, before)

    def test_ties_broken_by_time_then_id(self):
        specimen_id = self.ids[0]
        date = datetime.date(2024, 2, 1)
        morning = make_event(specimen_id, date, 10, time=datetime.time(8, 0))
        evening = make_event(specimen_id, date, 5, time=datetime.time(20, 0))
        untimed = make_event(specimen_id, date, 100)
        merged = tools.merge_latest({}, [evening, morning, untimed])
        self.assertEqual(merged[specimen_id].pk, 5)
        first = make_event(specimen_id, date, 1)
        second = make_event(specimen_id, date, 2)
        self.assertEqual(tools.merge_latest({}, [second, first])[specimen_id].pk, 2)
        self.assertEqual(tools.merge_latest({}, [first, second])[specimen_id].pk, 2)


class BatchStatusTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="keeper", password="pw")
        cls.specimens = [
            Specimen.objects.create(
                owner=cls.user,
                name=f"T{i:02d}",
                species="Grammostola rosea",
                sex=Specimen.Sex.FEMALE,
            )
            for i in range(25)
        ]
        for specimen in cls.specimens:
            for day in (1, 15, 8):
                specimen.record_feeding(
                    owner=cls.user,
                    date=datetime.date(2024, 3, day),
                    food_type=FoodType.CRICKET,
                )

    def test_latest_events_in_chunks(self):
        ids = [s.pk for s in self.specimens]
        with self.assertNumQueries(3):
            latest = tools.latest_events(ids, Event.Category.FEEDING)
        self.assertEqual(len(latest), 25)
        for event in latest.values():
            self.assertEqual(event.date, datetime.date(2024, 3, 15))

    @override_settings(SPIDERS_QUERY_CHUNK_SIZE=5)
    def test_chunk_size_setting(self):
        ids = [s.pk for s in self.specimens]
        with self.assertNumQueries(5):
            tools.latest_events(ids, Event.Category.FEEDING)

    def test_empty_ids(self):
        with self.assertNumQueries(0):
            self.assertEqual(tools.latest_events([], Event.Category.FEEDING), {})

    def test_string_ids_and_duplicates(self):
        ids = [str(self.specimens[0].pk), self.specimens[0].pk, str(self.specimens[1].pk)]
        with self.assertNumQueries(1):
            latest = tools.latest_events(ids, Event.Category.FEEDING)
        self.assertEqual(set(latest), {self.specimens[0].pk, self.specimens[1].pk})

    def test_invalid_id(self):
        with self.assertRaises(ValueError):
            tools.latest_events(["not-a-uuid"], Event.Category.FEEDING)

    def test_specimens_without_events(self):
        ids = [s.pk for s in self.specimens[:3]]
        statuses = tools.mating_statuses(ids)
        self.assertEqual(set(statuses), set(ids))
        for status in statuses.values():
            self.assertEqual(
                status,
                {"has_mating": False, "last_mating_date": None, "last_mating_result": None},
            )

    def test_mating_statuses(self):
        female = self.specimens[0]
        male = Specimen.objects.create(
            owner=self.user, name="Rocco", species=female.species, sex=Specimen.Sex.MALE
        )
        for day, result in ((1, MatingResult.FAILURE), (20, MatingResult.SUCCESS)):
            female.record_mating(
                owner=self.user,
                date=datetime.date(2024, 4, day),
                male=male,
                female=female,
                result=result,
            )
        ids = [female.pk, male.pk, self.specimens[1].pk]
        statuses = tools.mating_statuses(ids)
        self.assertEqual(statuses, tools.mating_statuses(ids))
        for pk in (female.pk, male.pk):
            self.assertTrue(statuses[pk]["has_mating"])
            self.assertEqual(statuses[pk]["last_mating_date"], datetime.date(2024, 4, 20))
            self.assertEqual(statuses[pk]["last_mating_result"], MatingResult.SUCCESS)
        self.assertFalse(statuses[self.specimens[1].pk]["has_mating"])

    def test_cocoon_statuses(self):
        laid, hatched = self.specimens[:2]
        Cocoon.objects.lay(laid, owner=self.user, date=datetime.date(2024, 1, 1))
        cocoon = Cocoon.objects.lay(
            hatched, owner=self.user, date=datetime.date(2024, 1, 1)
        )
        cocoon.set_state(Cocoon.State.HATCHED, hatched_count=10)
        statuses = tools.cocoon_statuses([laid.pk, hatched.pk])
        self.assertEqual(
            statuses[laid.pk],
            {
                "has_cocoon": True,
                "last_cocoon_date": datetime.date(2024, 1, 1),
                "cocoon_status": Cocoon.State.LAID,
                "estimated_hatch_date": datetime.date(2024, 3, 4),
            },
        )
        self.assertFalse(statuses[hatched.pk]["has_cocoon"])

    def test_date_projections(self):
        specimen = self.specimens[0]
        specimen.record_molt(
            owner=self.user,
            date=datetime.date(2024, 2, 2),
            previous_stage=1,
            new_stage=2,
        )
        ids = [specimen.pk, self.specimens[1].pk]
        self.assertEqual(
            tools.last_molt_dates(ids),
            {specimen.pk: datetime.date(2024, 2, 2), self.specimens[1].pk: None},
        )
        self.assertEqual(
            tools.last_feeding_dates(ids)[specimen.pk], datetime.date(2024, 3, 15)
        )

    def test_owner_restriction(self):
        other = User.objects.create_user(username="stranger", password="pw")
        ids = [self.specimens[0].pk]
        self.assertEqual(tools.last_feeding_dates(ids, owner=other), {ids[0]: None})

    def test_projection_registry(self):
        self.assertEqual(
            set(tools.PROJECTIONS), {"mating", "cocoon", "molting", "feeding"}
        )


class PhotoTests(TestCase):
    def test_photos_from_urls(self):
        photos = tools.photos_from_urls(
            ["https://example.com/a.jpg", "https://example.com/b.jpg"],
            datetime.date(2024, 1, 2),
        )
        self.assertEqual(len(photos), 2)
        self.assertTrue(photos[0]["is_main"])
        self.assertFalse(photos[1]["is_main"])
        self.assertEqual(photos[1]["date"], "2024-01-02")
        self.assertNotEqual(photos[0]["id"], photos[1]["id"])

    def test_no_photos(self):
        self.assertEqual(tools.photos_from_urls([], datetime.date(2024, 1, 2)), [])


class RebuildTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="keeper", password="pw")

    def test_rebuild_denormalized(self):
        specimen = Specimen.objects.create(
            owner=self.user, name="Rosie", species="Grammostola rosea"
        )
        specimen.record_molt(
            owner=self.user,
            date=datetime.date(2024, 1, 1),
            previous_stage=1,
            new_stage=2,
            new_length=1.2,
        )
        specimen.record_molt(
            owner=self.user,
            date=datetime.date(2024, 3, 1),
            previous_stage=2,
            new_stage=3,
        )
        specimen.record_feeding(
            owner=self.user, date=datetime.date(2024, 3, 5), food_type=FoodType.ROACH
        )
        # simulate a stage update that never happened
        Specimen.objects.filter(pk=specimen.pk).update(
            current_stage=1, body_length=None, measured_on=None, last_fed_on=None
        )
        specimen.refresh_from_db()
        changed = tools.rebuild_denormalized([specimen])
        self.assertEqual(changed, [specimen])
        specimen.refresh_from_db()
        self.assertEqual(specimen.current_stage, 3)
        self.assertEqual(specimen.body_length, 1.2)
        self.assertEqual(specimen.measured_on, datetime.date(2024, 1, 1))
        self.assertEqual(specimen.last_fed_on, datetime.date(2024, 3, 5))
        self.assertEqual(specimen.last_food_type, FoodType.ROACH)
        self.assertEqual(tools.rebuild_denormalized([specimen]), [])

    def test_rebuild_without_events(self):
        specimen = Specimen.objects.create(
            owner=self.user, name="Rosie", species="Grammostola rosea", current_stage=5
        )
        self.assertEqual(tools.rebuild_denormalized([specimen]), [])
        specimen.refresh_from_db()
        self.assertEqual(specimen.current_stage, 5)

    def test_rebuild_clears_deleted_feeding(self):
        specimen = Specimen.objects.create(
            owner=self.user, name="Rosie", species="Grammostola rosea", body_length=2.5
        )
        feeding = specimen.record_feeding(
            owner=self.user, date=datetime.date(2024, 3, 5), food_type=FoodType.ROACH
        )
        Event.objects.delete_event(feeding.pk, self.user)
        specimen.refresh_from_db()
        self.assertEqual(specimen.last_fed_on, datetime.date(2024, 3, 5))
        self.assertEqual(tools.rebuild_denormalized([specimen]), [specimen])
        specimen.refresh_from_db()
        self.assertIsNone(specimen.last_fed_on)
        self.assertEqual(specimen.last_food_type, "")
        # entered by hand
        self.assertEqual(specimen.body_length, 2.5)
        self.assertEqual(tools.rebuild_denormalized([specimen]), [])
