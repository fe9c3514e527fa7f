from __future__ import annotations

from datetime import date, datetime, timedelta, timezone as dt_timezone
from types import SimpleNamespace

from django.test import TestCase

from apps.common.exceptions import NotFoundError
from apps.contests.models import Contest, ContestEvent, ContestState, Round
from apps.events.models import Event
from apps.results.formats import NO_AVERAGE
from apps.results.models import Result

from .models import RecordType
from .services import NO_RECORD, EventRecordsService, compute_records, mark_batch_records, truncate_cutoff


# 测试用例：纪录查询与同日批次打标签


class RecordFixtureMixin:
    def setUp(self) -> None:
        self.event = Event.objects.create(event_id="333", name="三阶", rank=10, format="a")
        self.wr = RecordType.objects.create(label="WR", equivalent="WR", order=0, active=True)
        self.nr = RecordType.objects.create(label="NR", equivalent="NR", order=2, active=True)
        self.contest = Contest.objects.create(
            contest_id="old-open", name="Old Open", start_date=date(2024, 1, 1), state=ContestState.PUBLISHED
        )
        contest_event = ContestEvent.objects.create(contest=self.contest, event=self.event)
        self.round = Round.objects.create(
            contest=self.contest, contest_event=contest_event, round_type_id="f", format="a", date=date(2024, 1, 1)
        )

    def add_result(self, *, day: date, best: int, average: int, single=None, avg=None) -> Result:
        return Result.objects.create(
            contest=self.contest,
            round=self.round,
            event=self.event,
            date=day,
            person_ids=[1],
            attempts=[best] * 5,
            best=best,
            average=average,
            single_record_type=single,
            average_record_type=avg,
        )


class ComputeRecordsTests(RecordFixtureMixin, TestCase):
    """纪录快照查询"""

    def test_no_active_types_returns_none(self):
        self.assertIsNone(compute_records("333", []))
        self.wr.active = False
        self.assertIsNone(compute_records("333", [self.wr]))

    def test_missing_records_use_sentinel(self):
        records = compute_records("333", [self.wr, self.nr])
        self.assertEqual(records, {
            "WR": {"best": NO_RECORD, "average": NO_RECORD},
            "NR": {"best": NO_RECORD, "average": NO_RECORD},
        })

    def test_returns_best_record_before_cutoff(self):
        self.add_result(day=date(2024, 1, 1), best=900, average=1000, single="WR", avg="WR")
        self.add_result(day=date(2024, 3, 1), best=800, average=950, single="WR", avg="WR")
        self.add_result(day=date(2024, 2, 1), best=700, average=NO_AVERAGE, single="NR")

        current = compute_records("333", [self.wr, self.nr])
        self.assertEqual(current["WR"], {"best": 800, "average": 950})
        # 世界纪录同样计入国家纪录的成绩
        self.assertEqual(current["NR"], {"best": 700, "average": 950})

        # 截止日期当天的成绩不计入
        past = compute_records("333", [self.wr], date(2024, 3, 1))
        self.assertEqual(past["WR"], {"best": 900, "average": 1000})

    def test_datetime_cutoff_is_truncated_to_utc_date(self):
        self.add_result(day=date(2024, 3, 1), best=800, average=950, single="WR", avg="WR")
        # UTC 3 月 2 日 00:30 → 截止到 3 月 2 日，3 月 1 日的成绩可见
        cutoff = datetime(2024, 3, 2, 8, 30, tzinfo=dt_timezone(timedelta(hours=8)))
        self.assertEqual(truncate_cutoff(cutoff), date(2024, 3, 2))
        self.assertEqual(compute_records("333", [self.wr], cutoff)["WR"]["best"], 800)
        # 同一时刻的 UTC 日期为 3 月 1 日，则不可见
        early = datetime(2024, 3, 1, 23, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(compute_records("333", [self.wr], early)["WR"]["best"], NO_RECORD)

    def test_lower_tier_standing_includes_higher_tier_records(self):
        self.add_result(day=date(2024, 1, 1), best=900, average=1000, single="WR", avg="WR")
        records = compute_records("333", [self.wr, self.nr])
        self.assertEqual(records["NR"], {"best": 900, "average": 1000})

        # 低层级纪录不会反过来计入高层级
        self.add_result(day=date(2024, 2, 1), best=850, average=950, single="NR", avg="NR")
        records = compute_records("333", [self.wr, self.nr])
        self.assertEqual(records["WR"], {"best": 900, "average": 1000})
        self.assertEqual(records["NR"], {"best": 850, "average": 950})

    def test_compute_records_is_idempotent(self):
        self.add_result(day=date(2024, 1, 1), best=900, average=1000, single="WR", avg="WR")
        first = compute_records("333", [self.wr, self.nr], date(2025, 1, 1))
        second = compute_records("333", [self.wr, self.nr], date(2025, 1, 1))
        self.assertEqual(first, second)

    def test_service_rejects_unknown_event(self):
        with self.assertRaises(NotFoundError):
            EventRecordsService().execute("999")

    def test_service_reads_active_types(self):
        self.nr.active = False
        self.nr.save()
        records = EventRecordsService().execute("333")
        self.assertEqual(set(records), {"WR"})


class MarkBatchRecordsTests(TestCase):
    """同日批次：只和批次开始前的快照比较"""

    def setUp(self) -> None:
        self.wr = RecordType(label="WR", equivalent="WR", order=0, active=True)
        self.nr = RecordType(label="NR", equivalent="NR", order=2, active=True)

    @staticmethod
    def _result(best, average=NO_AVERAGE):
        return SimpleNamespace(best=best, average=average, single_record_type="stale", average_record_type=None)

    def test_batch_best_ties_or_beats_snapshot(self):
        a, b, c = self._result(900, 1000), self._result(900, 1100), self._result(950, 990)
        snapshot = {"WR": {"best": 900, "average": 995}}
        snapshot = mark_batch_records([a, b, c], snapshot, [self.wr])
        self.assertEqual([r.single_record_type for r in (a, b, c)], ["WR", "WR", None])
        self.assertEqual([r.average_record_type for r in (a, b, c)], [None, None, "WR"])
        self.assertEqual(snapshot["WR"], {"best": 900, "average": 990})

    def test_worse_results_get_no_label(self):
        a = self._result(1000, 1200)
        snapshot = mark_batch_records([a], {"WR": {"best": 900, "average": 1000}}, [self.wr])
        self.assertIsNone(a.single_record_type)
        self.assertIsNone(a.average_record_type)
        self.assertEqual(snapshot["WR"], {"best": 900, "average": 1000})

    def test_higher_tier_label_wins_and_lower_tier_advances(self):
        a = self._result(800)
        snapshot = {
            "WR": {"best": 850, "average": NO_RECORD},
            "NR": {"best": 900, "average": NO_RECORD},
        }
        snapshot = mark_batch_records([a], snapshot, [self.nr, self.wr])
        self.assertEqual(a.single_record_type, "WR")
        self.assertEqual(snapshot["NR"]["best"], 800)

    def test_lower_tier_only(self):
        a = self._result(880)
        snapshot = {
            "WR": {"best": 850, "average": NO_RECORD},
            "NR": {"best": 900, "average": NO_RECORD},
        }
        mark_batch_records([a], snapshot, [self.wr, self.nr])
        self.assertEqual(a.single_record_type, "NR")

    def test_no_snapshot_clears_labels(self):
        a = self._result(800)
        self.assertIsNone(mark_batch_records([a], None, [self.wr]))
        self.assertIsNone(a.single_record_type)
