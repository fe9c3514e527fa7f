from io import StringIO

from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase

from apps.common.exceptions import NotFoundError
from apps.records.models import RecordType

from .models import Event
from .repo import EventRepo


class SeedCatalogCommandTests(TestCase):
    def test_seed_is_repeatable(self):
        call_command("seed_catalog", stdout=StringIO())
        call_command("seed_catalog", stdout=StringIO())
        self.assertEqual(Event.objects.filter(event_id="333").count(), 1)
        self.assertEqual(Event.objects.get(event_id="333tm").participants, 2)
        self.assertEqual(list(RecordType.objects.values_list("label", flat=True)), ["WR", "CR", "NR"])
        self.assertTrue(Group.objects.filter(name="moderators").exists())

    def test_existing_record_type_keeps_active_flag(self):
        RecordType.objects.create(label="WR", equivalent="WR", order=0, active=False)
        call_command("seed_catalog", stdout=StringIO())
        self.assertFalse(RecordType.objects.get(label="WR").active)
        self.assertTrue(RecordType.objects.get(label="NR").active)

    def test_inactive_flag(self):
        call_command("seed_catalog", "--inactive-records", stdout=StringIO())
        self.assertFalse(RecordType.objects.filter(active=True).exists())


class EventRepoTests(TestCase):
    def setUp(self):
        Event.objects.create(event_id="333", name="三阶", rank=10)
        Event.objects.create(event_id="222", name="二阶", rank=20)

    def test_unknown_event_is_not_found(self):
        with self.assertRaises(NotFoundError):
            EventRepo().get_by_event_id("999")

    def test_get_many(self):
        events = EventRepo().get_many(["222", "333", "404"])
        self.assertEqual(sorted(events), ["222", "333"])
