from __future__ import annotations

from datetime import date
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.test import TestCase
from rest_framework.test import APIClient

from apps.common.exceptions import (
    ConflictError,
    ContestFinishedError,
    ContestNotApprovedError,
    ContestStateError,
    InternalServiceError,
    NotFoundError,
    ValidationError,
)
from apps.common.permissions import Role
from apps.events.models import Event
from apps.persons.models import Person
from apps.records.models import RecordType
from apps.results.models import Result

from .models import Contest, ContestEvent, ContestState, ContestType, Round
from .posting import PostResultsService
from .reconcile import EventReconciler
from .schemas import ContestCreateSchema, ContestEventSchema, ContestUpdateSchema, PostResultsSchema
from .services import (
    ContestCreateService,
    ContestQueryService,
    ContestStateService,
    ContestUpdateService,
)


# 测试用例：覆盖比赛生命周期、结构合并、成绩提交与查询，以及 API 冒烟

User = get_user_model()

MOD_ROLES = [Role.USER, Role.MODERATOR]
ADMIN_ROLES = [Role.USER, Role.MODERATOR, Role.ADMIN]

AVG_ROUND = {"roundTypeId": "f", "format": "a", "date": "2024-05-01"}


def result_payload(person_id, *attempts) -> dict:
    return {"personId": person_id, "attempts": list(attempts)}


def round_payload(round_obj: Round, *results) -> dict:
    return {
        "id": round_obj.pk,
        "roundTypeId": round_obj.round_type_id,
        "format": round_obj.format,
        "date": round_obj.date,
        "results": list(results),
    }


class ContestFixtureMixin:
    """公共数据：项目目录、纪录类型、选手、比赛管理员与管理员"""

    def setUp(self) -> None:
        self.e333 = Event.objects.create(event_id="333", name="三阶", rank=10, format="a")
        self.e222 = Event.objects.create(event_id="222", name="二阶", rank=20, format="a")
        self.team_event = Event.objects.create(event_id="333tm", name="三阶团队", rank=30, format="1", participants=2)
        self.wr = RecordType.objects.create(label="WR", equivalent="WR", order=0, active=True)
        for pid in (1, 2, 3, 5, 9, 12):
            Person.objects.create(person_id=pid, name=f"Person {pid}", country_iso2="CN")
        self.mod = User.objects.create_user(username="mod", password="Pass1234")
        self.mod.groups.add(Group.objects.create(name="moderators"))
        self.other_mod = User.objects.create_user(username="mod2", password="Pass1234")
        self.other_mod.groups.add(Group.objects.get(name="moderators"))
        self.admin = User.objects.create_user(username="root", password="Pass1234", is_staff=True)

    def make_contest(self, *, state=ContestState.APPROVED, contest_id="spring-open", events=None, **extra) -> Contest:
        payload = {
            "contestId": contest_id,
            "name": "Spring Open",
            "startDate": "2024-05-01",
            "countryId": "CN",
            "city": "杭州",
            "venue": "体育馆",
            "events": events or [{"eventId": "333", "rounds": [dict(AVG_ROUND)]}],
        }
        payload.update(extra)
        contest = ContestCreateService().execute(ContestCreateSchema.from_dict(payload), self.mod)
        if state != ContestState.CREATED:
            Contest.objects.filter(pk=contest.pk).update(state=state)
            contest.refresh_from_db()
        return contest

    @staticmethod
    def rounds_of(contest: Contest, event_id: str = "333") -> list[Round]:
        return list(
            Round.objects.filter(contest=contest, contest_event__event__event_id=event_id).order_by("date", "id")
        )

    @staticmethod
    def add_result(contest, round_obj, *, best=1000, average=1100, person_ids=(1,), day=None,
                   single=None, avg=None) -> Result:
        return Result.objects.create(
            contest=contest,
            round=round_obj,
            event=round_obj.contest_event.event,
            date=day or round_obj.date,
            person_ids=list(person_ids),
            attempts=[best] * 5,
            best=best,
            average=average,
            ranking=1,
            single_record_type=single,
            average_record_type=avg,
        )

    @staticmethod
    def post(contest: Contest, events: list[dict]):
        schema = PostResultsSchema.from_dict({"events": events})
        return PostResultsService().execute(contest.contest_id, schema)


class ContestCreateTests(ContestFixtureMixin, TestCase):
    """创建比赛：初始状态、重复标识与结构校验"""

    def test_create_contest_starts_empty(self):
        contest = self.make_contest(state=ContestState.CREATED)
        self.assertEqual(contest.state, ContestState.CREATED)
        self.assertEqual(contest.participants, 0)
        self.assertEqual(contest.created_by, self.mod)
        rounds = self.rounds_of(contest)
        self.assertEqual(len(rounds), 1)
        self.assertTrue(rounds[0].not_published)
        self.assertFalse(Result.objects.filter(contest=contest).exists())

    def test_duplicate_contest_id_is_conflict(self):
        self.make_contest()
        with self.assertRaises(ConflictError):
            self.make_contest()

    def test_round_count_bounds(self):
        with self.assertRaises(ValidationError):
            self.make_contest(events=[{"eventId": "333", "rounds": []}])
        too_many = [
            {"roundTypeId": "1", "format": "a", "date": "2024-05-01", "proceed": {"type": "number", "value": 8}}
            for _ in range(10)
        ] + [dict(AVG_ROUND)]
        with self.assertRaises(ValidationError):
            self.make_contest(events=[{"eventId": "333", "rounds": too_many}])

    def test_multi_day_contest_requires_end_date(self):
        with self.assertRaises(ValidationError):
            self.make_contest(type=ContestType.COMPETITION)
        contest = self.make_contest(type=ContestType.COMPETITION, endDate="2024-05-02")
        self.assertEqual(contest.end_date, date(2024, 5, 2))

    def test_only_last_round_has_no_proceed(self):
        rounds = [
            {"roundTypeId": "1", "format": "a", "date": "2024-05-01"},
            {"roundTypeId": "f", "format": "a", "date": "2024-05-01"},
        ]
        with self.assertRaises(ValidationError):
            self.make_contest(events=[{"eventId": "333", "rounds": rounds}])

    def test_unknown_event_leaves_nothing_behind(self):
        with self.assertRaises(NotFoundError):
            self.make_contest(events=[{"eventId": "999", "rounds": [dict(AVG_ROUND)]}])
        self.assertFalse(Contest.objects.exists())

    def test_missing_required_field_is_rejected(self):
        payload = {"contestId": "no-name", "startDate": "2024-05-01", "events": []}
        with self.assertRaises(ValidationError) as ctx:
            ContestCreateSchema.from_dict(payload)
        self.assertIn("name", ctx.exception.message)

    def test_unknown_organizer_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.make_contest(organizers=[{"personId": 404}])

    def test_organizers_are_resolved(self):
        contest = self.make_contest(organizers=[{"personId": 1}, 2])
        self.assertEqual(sorted(p.person_id for p in contest.organizers.all()), [1, 2])


class ContestUpdateTests(ContestFixtureMixin, TestCase):
    """修改比赛：按状态与角色过滤字段，被过滤的字段保持原值"""

    def update(self, contest, payload, roles=MOD_ROLES):
        return ContestUpdateService().execute(contest.contest_id, ContestUpdateSchema.from_dict(payload), roles)

    def test_ongoing_contest_ignores_name_for_moderator(self):
        contest = self.make_contest(state=ContestState.ONGOING)
        _, report = self.update(contest, {"name": "Renamed", "description": "新描述"})
        self.assertEqual(report.applied, ["description"])
        self.assertEqual(report.skipped, ["name"])
        contest.refresh_from_db()
        self.assertEqual(contest.name, "Spring Open")
        self.assertEqual(contest.description, "新描述")

    def test_admin_only_fields(self):
        contest = self.make_contest(state=ContestState.CREATED)
        _, report = self.update(contest, {"contestId": "renamed-open", "name": "X"})
        self.assertEqual(report.skipped, ["contest_id"])
        self.assertEqual(report.applied, ["name"])
        self.assertTrue(Contest.objects.filter(contest_id="spring-open", name="X").exists())

    def test_admin_can_edit_finished_contest(self):
        contest = self.make_contest(state=ContestState.FINISHED)
        updated, report = self.update(contest, {"contestId": "renamed-open", "name": "X"}, ADMIN_ROLES)
        self.assertEqual(report.skipped, [])
        self.assertEqual(updated.contest_id, "renamed-open")
        self.assertEqual(Contest.objects.get(contest_id="renamed-open").name, "X")

    def test_finished_contest_structure_is_frozen_for_moderator(self):
        contest = self.make_contest(state=ContestState.FINISHED)
        events = [{"eventId": "222", "rounds": [dict(AVG_ROUND)]}]
        _, report = self.update(contest, {"events": events, "contact": "x@example.com"})
        self.assertEqual(report.skipped, ["contact", "events"])
        self.assertIsNone(report.rounds)
        self.assertEqual([ce.event.event_id for ce in contest.events.all()], ["333"])

    def test_renaming_to_existing_id_is_conflict(self):
        self.make_contest(contest_id="taken")
        contest = self.make_contest()
        with self.assertRaises(ConflictError):
            self.update(contest, {"contestId": "taken"}, ADMIN_ROLES)

    def test_end_date_before_start_is_rejected(self):
        contest = self.make_contest(type=ContestType.COMPETITION, endDate="2024-05-02")
        with self.assertRaises(ValidationError):
            self.update(contest, {"startDate": "2024-06-01"})

    def test_unknown_contest(self):
        with self.assertRaises(NotFoundError):
            ContestUpdateService().execute("missing", ContestUpdateSchema.from_dict({"name": "x"}), MOD_ROLES)


class ReconcileTests(ContestFixtureMixin, TestCase):
    """结构合并：有成绩的轮次永不删除，格式与晋级规则按成绩保护"""

    PROCEED = {"type": "number", "value": 8}

    def setUp(self) -> None:
        super().setUp()
        self.contest = self.make_contest(events=[
            {"eventId": "333", "rounds": [
                {"roundTypeId": "1", "format": "a", "date": "2024-05-01", "proceed": self.PROCEED},
                {"roundTypeId": "f", "format": "a", "date": "2024-05-02"},
            ]},
            {"eventId": "222", "rounds": [dict(AVG_ROUND)]},
        ])
        self.r1, self.r2 = self.rounds_of(self.contest)
        self.add_result(self.contest, self.r1)

    def update_events(self, events):
        _, report = ContestUpdateService().execute(
            self.contest.contest_id, ContestUpdateSchema.from_dict({"events": events}), MOD_ROLES
        )
        return report.rounds

    def incoming(self, round_obj, **changes) -> dict:
        data = {
            "id": round_obj.pk,
            "roundTypeId": round_obj.round_type_id,
            "format": round_obj.format,
            "date": round_obj.date,
            "proceed": round_obj.proceed,
        }
        data.update(changes)
        return data

    def test_round_with_results_is_never_deleted(self):
        report = self.update_events([
            {"eventId": "333", "rounds": [{"roundTypeId": "f", "format": "a", "date": "2024-05-03"}]},
        ])
        self.assertEqual(report.kept_rounds, [self.r1.pk])
        self.assertEqual(report.deleted_rounds, [self.r2.pk])
        self.assertEqual(report.deleted_events, ["222"])
        self.assertEqual(len(report.created_rounds), 1)
        self.assertTrue(Round.objects.filter(pk=self.r1.pk).exists())
        self.assertFalse(Round.objects.filter(pk=self.r2.pk).exists())
        self.assertFalse(ContestEvent.objects.filter(contest=self.contest, event=self.e222).exists())

    def test_event_with_results_is_kept(self):
        self.add_result(self.contest, self.rounds_of(self.contest, "222")[0])
        report = self.update_events([
            {"eventId": "333", "rounds": [self.incoming(self.r1), self.incoming(self.r2)]},
        ])
        self.assertEqual(report.kept_events, ["222"])
        self.assertEqual(report.deleted_events, [])
        self.assertEqual(len(self.rounds_of(self.contest, "222")), 1)

    def test_format_locked_once_round_has_results(self):
        report = self.update_events([
            {"eventId": "333", "rounds": [self.incoming(self.r1, format="m"), self.incoming(self.r2, format="m")]},
        ])
        self.r1.refresh_from_db()
        self.r2.refresh_from_db()
        self.assertEqual(self.r1.format, "a")
        self.assertEqual(self.r2.format, "m")
        self.assertEqual(report.format_locked_rounds, [self.r1.pk])

    def test_round_type_is_always_updatable(self):
        self.update_events([
            {"eventId": "333", "rounds": [self.incoming(self.r1, roundTypeId="2"), self.incoming(self.r2)]},
        ])
        self.r1.refresh_from_db()
        self.assertEqual(self.r1.round_type_id, "2")

    def test_proceed_cleared_when_round_becomes_final(self):
        self.update_events([
            {"eventId": "333", "rounds": [self.incoming(self.r1, proceed=None)]},
        ])
        self.r1.refresh_from_db()
        self.assertIsNone(self.r1.proceed)
        self.assertFalse(Round.objects.filter(pk=self.r2.pk).exists())

    def test_proceed_protected_when_round_has_results(self):
        self.update_events([
            {"eventId": "333", "rounds": [
                self.incoming(self.r1, proceed={"type": "percentage", "value": 50}),
                self.incoming(self.r2),
            ]},
        ])
        self.r1.refresh_from_db()
        self.assertEqual(self.r1.proceed, self.PROCEED)

    def test_proceed_set_on_former_final_round(self):
        self.add_result(self.contest, self.r2)
        report = self.update_events([
            {"eventId": "333", "rounds": [
                self.incoming(self.r1),
                self.incoming(self.r2, proceed={"type": "number", "value": 4}),
                {"roundTypeId": "f", "format": "a", "date": "2024-05-03"},
            ]},
        ])
        self.r2.refresh_from_db()
        self.assertEqual(self.r2.proceed, {"type": "number", "value": 4})
        self.assertEqual(len(report.created_rounds), 1)

    def test_unknown_event_aborts_whole_update(self):
        with self.assertRaises(NotFoundError):
            self.update_events([
                {"eventId": "999", "rounds": [dict(AVG_ROUND)]},
            ])
        self.assertTrue(Round.objects.filter(pk=self.r2.pk).exists())
        self.assertTrue(ContestEvent.objects.filter(contest=self.contest, event=self.e222).exists())

    def test_events_returned_in_catalog_order(self):
        incoming = ContestEventSchema.from_list([
            {"eventId": "222", "rounds": [dict(AVG_ROUND)]},
            {"eventId": "333", "rounds": [self.incoming(self.r1), self.incoming(self.r2)]},
            {"eventId": "333tm", "rounds": [{"roundTypeId": "f", "format": "1", "date": "2024-05-01"}]},
        ])
        contest_events, report = EventReconciler().reconcile(self.contest, incoming)
        self.assertEqual([ce.event.event_id for ce in contest_events], ["333", "222", "333tm"])
        self.assertEqual(report.created_events, ["333tm"])


class ContestStateTests(ContestFixtureMixin, TestCase):
    """状态机：比赛管理员只能结束进行中的比赛，公示清除未公示标记"""

    def test_moderator_can_finish_ongoing_contest(self):
        contest = self.make_contest(state=ContestState.ONGOING)
        report = ContestStateService().execute(contest.contest_id, ContestState.FINISHED, MOD_ROLES)
        self.assertTrue(report.applied)
        contest.refresh_from_db()
        self.assertEqual(contest.state, ContestState.FINISHED)

    def test_other_moderator_transitions_have_no_effect(self):
        contest = self.make_contest(state=ContestState.APPROVED)
        report = ContestStateService().execute(contest.contest_id, ContestState.ONGOING, MOD_ROLES)
        self.assertFalse(report.applied)
        contest.refresh_from_db()
        self.assertEqual(contest.state, ContestState.APPROVED)

        finished = self.make_contest(state=ContestState.FINISHED, contest_id="finished-open")
        report = ContestStateService().execute(finished.contest_id, ContestState.PUBLISHED, MOD_ROLES)
        self.assertFalse(report.applied)
        self.assertTrue(Round.objects.filter(contest=finished, not_published=True).exists())

    def test_admin_can_move_to_any_state(self):
        contest = self.make_contest(state=ContestState.FINISHED)
        report = ContestStateService().execute(contest.contest_id, ContestState.REJECTED, ADMIN_ROLES)
        self.assertTrue(report.applied)
        self.assertEqual(report.previous_state, ContestState.FINISHED)

    def test_publishing_clears_not_published_flags(self):
        contest = self.make_contest(state=ContestState.FINISHED)
        self.add_result(contest, self.rounds_of(contest)[0])
        ContestStateService().execute(contest.contest_id, ContestState.PUBLISHED, ADMIN_ROLES)
        self.assertFalse(Round.objects.filter(contest=contest, not_published=True).exists())
        self.assertFalse(Result.objects.filter(contest=contest, not_published=True).exists())

    def test_hooks_run_only_for_target_state(self):
        contest = self.make_contest(state=ContestState.CREATED)
        hook = mock.Mock()
        service = ContestStateService(hooks={ContestState.APPROVED: [hook]})
        service.execute(contest.contest_id, ContestState.APPROVED, ADMIN_ROLES)
        hook.assert_called_once()
        service.execute(contest.contest_id, ContestState.ONGOING, ADMIN_ROLES)
        hook.assert_called_once()


class PostResultsTests(ContestFixtureMixin, TestCase):
    """成绩提交：状态前置条件、排名、纪录与失败回滚"""

    TWO_DAYS = [
        {"roundTypeId": "1", "format": "a", "date": "2024-05-01", "proceed": {"type": "number", "value": 8}},
        {"roundTypeId": "f", "format": "a", "date": "2024-05-02"},
    ]

    def test_first_post_moves_contest_to_ongoing(self):
        contest = self.make_contest()
        (round_obj,) = self.rounds_of(contest)
        outcome = self.post(contest, [{"eventId": "333", "rounds": [round_payload(
            round_obj,
            result_payload(1, 1000, 1100, 1200, 1300, 1400),
            result_payload("2", 900, 1000, 1100, 1200, -1),
        )]}])
        self.assertEqual(outcome.participants, 2)
        contest.refresh_from_db()
        self.assertEqual(contest.state, ContestState.ONGOING)
        self.assertEqual(contest.participants, 2)
        results = list(Result.objects.filter(round=round_obj).order_by("ranking"))
        self.assertEqual([r.person_ids for r in results], [[2], [1]])
        self.assertEqual([(r.best, r.average, r.ranking) for r in results], [(900, 1100, 1), (1000, 1200, 2)])

    def test_post_on_created_contest_is_rejected(self):
        contest = self.make_contest(state=ContestState.CREATED)
        (round_obj,) = self.rounds_of(contest)
        with self.assertRaises(ContestNotApprovedError) as ctx:
            self.post(contest, [{"eventId": "333", "rounds": [round_payload(
                round_obj, result_payload(1, 1000, 1100, 1200, 1300, 1400),
            )]}])
        self.assertIsInstance(ctx.exception, ContestStateError)
        contest.refresh_from_db()
        self.assertEqual(contest.state, ContestState.CREATED)
        self.assertFalse(Result.objects.filter(contest=contest).exists())

    def test_post_on_finished_contest_is_rejected(self):
        contest = self.make_contest(state=ContestState.FINISHED)
        with self.assertRaises(ContestFinishedError):
            self.post(contest, [])

    def test_failure_restores_previous_results(self):
        contest = self.make_contest()
        (round_obj,) = self.rounds_of(contest)
        self.add_result(contest, round_obj, best=950, average=1050, person_ids=(3,))
        before = list(Result.objects.filter(contest=contest).values())

        with mock.patch("apps.contests.posting.mark_batch_records", side_effect=RuntimeError("storage down")):
            with self.assertRaises(InternalServiceError):
                self.post(contest, [{"eventId": "333", "rounds": [round_payload(
                    round_obj, result_payload(1, 1000, 1100, 1200, 1300, 1400),
                )]}])

        self.assertEqual(list(Result.objects.filter(contest=contest).values()), before)
        contest.refresh_from_db()
        self.assertEqual(contest.state, ContestState.APPROVED)
        self.assertEqual(contest.participants, 0)

    def test_invalid_payload_is_rejected_before_any_change(self):
        contest = self.make_contest()
        (round_obj,) = self.rounds_of(contest)
        self.add_result(contest, round_obj)
        other = self.make_contest(contest_id="other-open")
        (foreign_round,) = self.rounds_of(other)

        with self.assertRaises(ValidationError):
            self.post(contest, [{"eventId": "333", "rounds": [round_payload(
                foreign_round, result_payload(1, 1000, 1100, 1200, 1300, 1400),
            )]}])
        with self.assertRaises(ValidationError):
            self.post(contest, [{"eventId": "333", "rounds": [round_payload(
                round_obj, result_payload(1, 1000, 1100, 1200, 1300, 1400, 1500),
            )]}])
        self.assertEqual(Result.objects.filter(contest=contest).count(), 1)

    def test_team_results_count_every_member(self):
        contest = self.make_contest(events=[
            {"eventId": "333tm", "rounds": [{"roundTypeId": "f", "format": "1", "date": "2024-05-01"}]},
        ])
        (round_obj,) = self.rounds_of(contest, "333tm")
        with self.assertRaises(ValidationError):
            self.post(contest, [{"eventId": "333tm", "rounds": [round_payload(round_obj, result_payload("5", 3000))]}])

        outcome = self.post(contest, [{"eventId": "333tm", "rounds": [round_payload(
            round_obj,
            result_payload("5;9", 3000),
            result_payload("9;12", 3100),
        )]}])
        self.assertEqual(outcome.participants, 3)
        self.assertEqual(Result.objects.get(contest=contest, ranking=1).person_ids, [5, 9])

    def test_reposting_replaces_all_results(self):
        contest = self.make_contest()
        (round_obj,) = self.rounds_of(contest)
        first = [result_payload(pid, 1000, 1100, 1200, 1300, 1400) for pid in (1, 2, 3)]
        self.post(contest, [{"eventId": "333", "rounds": [round_payload(round_obj, *first)]}])
        self.post(contest, [{"eventId": "333", "rounds": [round_payload(
            round_obj, result_payload(5, 1000, 1100, 1200, 1300, 1400),
        )]}])
        self.assertEqual(list(Result.objects.filter(contest=contest).values_list("person_ids", flat=True)), [[5]])
        contest.refresh_from_db()
        self.assertEqual(contest.participants, 1)

    def test_earlier_day_record_is_visible_to_later_day(self):
        contest = self.make_contest(events=[{"eventId": "333", "rounds": self.TWO_DAYS}])
        day1, day2 = self.rounds_of(contest)
        # 提交顺序与日期相反，处理时按日期排序
        self.post(contest, [{"eventId": "333", "rounds": [
            round_payload(day2, result_payload(2, 900, 1000, 1100, 1200, 1300)),
            round_payload(day1, result_payload(1, 1000, 1100, 1200, 1300, 1400)),
        ]}])
        r1 = Result.objects.get(round=day1)
        r2 = Result.objects.get(round=day2)
        self.assertEqual((r1.single_record_type, r1.average_record_type), ("WR", "WR"))
        self.assertEqual((r2.single_record_type, r2.average_record_type), ("WR", "WR"))

    def test_later_day_never_affects_earlier_day(self):
        contest = self.make_contest(events=[{"eventId": "333", "rounds": self.TWO_DAYS}])
        day1, day2 = self.rounds_of(contest)
        self.post(contest, [{"eventId": "333", "rounds": [
            round_payload(day1, result_payload(1, 900, 1000, 1100, 1200, 1300)),
            round_payload(day2, result_payload(2, 1000, 1100, 1200, 1300, 1400)),
        ]}])
        r1 = Result.objects.get(round=day1)
        r2 = Result.objects.get(round=day2)
        self.assertEqual(r1.single_record_type, "WR")
        self.assertIsNone(r2.single_record_type)
        self.assertIsNone(r2.average_record_type)

    def test_same_day_rounds_share_one_snapshot(self):
        same_day = [
            {"roundTypeId": "1", "format": "a", "date": "2024-05-01", "proceed": {"type": "number", "value": 8}},
            {"roundTypeId": "f", "format": "a", "date": "2024-05-01"},
        ]
        contest = self.make_contest(events=[{"eventId": "333", "rounds": same_day}])
        first, final = self.rounds_of(contest)
        self.post(contest, [{"eventId": "333", "rounds": [
            round_payload(first, result_payload(1, 1000, 1100, 1200, 1300, 1400)),
            round_payload(final, result_payload(1, 900, 1000, 1100, 1200, 1300)),
        ]}])
        self.assertIsNone(Result.objects.get(round=first).single_record_type)
        self.assertEqual(Result.objects.get(round=final).single_record_type, "WR")

    def test_existing_record_must_be_beaten(self):
        old = self.make_contest(contest_id="old-open", state=ContestState.PUBLISHED)
        self.add_result(old, self.rounds_of(old)[0], best=800, average=850, day=date(2024, 1, 1),
                        single="WR", avg="WR")
        contest = self.make_contest()
        (round_obj,) = self.rounds_of(contest)
        self.post(contest, [{"eventId": "333", "rounds": [round_payload(
            round_obj, result_payload(1, 800, 900, 1000, 1100, 1200),
        )]}])
        result = Result.objects.get(contest=contest)
        # 持平单次纪录，平均未破
        self.assertEqual(result.single_record_type, "WR")
        self.assertIsNone(result.average_record_type)

    def test_lower_tier_sees_records_from_earlier_contest(self):
        RecordType.objects.create(label="NR", equivalent="NR", order=2, active=True)
        first = self.make_contest(contest_id="first")
        (first_round,) = self.rounds_of(first)
        self.post(first, [{"eventId": "333", "rounds": [round_payload(
            first_round, result_payload(1, 900, 1000, 1000, 1000, 1100),
        )]}])

        second = self.make_contest(
            contest_id="second",
            startDate="2024-06-01",
            events=[{"eventId": "333", "rounds": [{"roundTypeId": "f", "format": "a", "date": "2024-06-01"}]}],
        )
        (second_round,) = self.rounds_of(second)
        self.post(second, [{"eventId": "333", "rounds": [round_payload(
            second_round, result_payload(2, 1100, 1200, 1200, 1200, 1300),
        )]}])

        earlier = Result.objects.get(contest=first)
        later = Result.objects.get(contest=second)
        self.assertEqual((earlier.single_record_type, earlier.average_record_type), ("WR", "WR"))
        self.assertIsNone(later.single_record_type)
        self.assertIsNone(later.average_record_type)

    def test_no_active_record_types_means_no_labels(self):
        RecordType.objects.update(active=False)
        contest = self.make_contest()
        (round_obj,) = self.rounds_of(contest)
        self.post(contest, [{"eventId": "333", "rounds": [round_payload(
            round_obj, result_payload(1, 800, 900, 1000, 1100, 1200),
        )]}])
        self.assertIsNone(Result.objects.get(contest=contest).single_record_type)


class ContestQueryTests(ContestFixtureMixin, TestCase):
    """查询：公开详情隐藏未审核比赛，管理详情附带赛前纪录"""

    def test_public_detail_hides_created_contest(self):
        self.make_contest(state=ContestState.CREATED)
        with self.assertRaises(NotFoundError):
            ContestQueryService().get_contest("spring-open")

    def test_public_detail_includes_persons_once_ongoing(self):
        contest = self.make_contest()
        self.assertEqual(ContestQueryService().get_contest("spring-open")["persons"], [])
        (round_obj,) = self.rounds_of(contest)
        self.post(contest, [{"eventId": "333", "rounds": [round_payload(
            round_obj,
            result_payload(1, 1000, 1100, 1200, 1300, 1400),
            result_payload(2, 1000, 1100, 1200, 1300, 1400),
        )]}])
        data = ContestQueryService().get_contest("spring-open")
        self.assertEqual([p["person_id"] for p in data["persons"]], [1, 2])
        rounds = data["contest"]["events"][0]["rounds"]
        self.assertEqual(len(rounds[0]["results"]), 2)

    def test_listings(self):
        self.make_contest(state=ContestState.CREATED, contest_id="draft")
        self.make_contest(contest_id="cn-open")
        self.make_contest(contest_id="us-open", countryId="US")
        Contest.objects.filter(contest_id="us-open").update(created_by=self.other_mod)

        service = ContestQueryService()
        self.assertEqual({c.contest_id for c in service.list_contests()}, {"cn-open", "us-open"})
        self.assertEqual([c.contest_id for c in service.list_contests("US")], ["us-open"])
        self.assertEqual({c.contest_id for c in service.list_mod_contests(self.mod, MOD_ROLES)}, {"draft", "cn-open"})
        self.assertEqual(len(service.list_mod_contests(self.admin, ADMIN_ROLES)), 3)

    def test_mod_detail_records_as_of_start_date(self):
        old = self.make_contest(contest_id="old-open", state=ContestState.PUBLISHED)
        self.add_result(old, self.rounds_of(old)[0], best=800, average=850, day=date(2024, 1, 1),
                        single="WR", avg="WR")
        # 比赛开始当天的成绩不计入赛前纪录
        self.add_result(old, self.rounds_of(old)[0], best=700, average=750, day=date(2024, 5, 1),
                        single="WR", avg="WR")
        self.make_contest()
        data = ContestQueryService().get_mod_contest("spring-open")
        self.assertEqual(data["records"], {"333": {"WR": {"best": 800, "average": 850}}})
        self.assertEqual(data["contest"]["created_by"], self.mod.id)


class ContestApiTests(ContestFixtureMixin, TestCase):
    """API 冒烟：统一响应结构与权限"""

    def setUp(self) -> None:
        super().setUp()
        self.client = APIClient()

    def create_payload(self) -> dict:
        return {
            "contestId": "api-open",
            "name": "API Open",
            "startDate": "2024-05-01",
            "events": [{"eventId": "333", "rounds": [dict(AVG_ROUND)]}],
        }

    def test_anonymous_cannot_create(self):
        resp = self.client.post("/api/contests/", self.create_payload(), format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], 40300)

    def test_incomplete_payload_is_rejected_request(self):
        self.client.force_authenticate(self.mod)
        payload = self.create_payload()
        del payload["name"]
        resp = self.client.post("/api/contests/", payload, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], ValidationError.default_code)
        self.assertFalse(Contest.objects.exists())

    def test_full_flow(self):
        self.client.force_authenticate(self.mod)
        resp = self.client.post("/api/contests/", self.create_payload(), format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["code"], 0)

        resp = self.client.get("/api/contests/api-open/")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], 40400)

        resp = self.client.post("/api/contests/api-open/results/", {"events": []}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], ContestNotApprovedError.default_code)

        resp = self.client.post("/api/contests/api-open/state/", {"state": ContestState.APPROVED}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.data["data"]["applied"])

        self.client.force_authenticate(self.admin)
        resp = self.client.post("/api/contests/api-open/state/", {"state": ContestState.APPROVED}, format="json")
        self.assertTrue(resp.data["data"]["applied"])

        self.client.force_authenticate(self.mod)
        (round_obj,) = self.rounds_of(Contest.objects.get(contest_id="api-open"))
        payload = {"events": [{"eventId": "333", "rounds": [round_payload(
            round_obj,
            result_payload("1", 1000, 1100, 1200, 1300, 1400),
            result_payload("2", 1000, 1100, 1200, 1300, 1400),
        )]}]}
        payload["events"][0]["rounds"][0]["date"] = round_obj.date.isoformat()
        resp = self.client.post("/api/contests/api-open/results/", payload, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["data"]["participants"], 2)

        resp = self.client.patch("/api/contests/api-open/", {"name": "Renamed", "contact": "x"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["extra"]["changes"]["skipped"], ["name"])

        resp = self.client.get("/api/records/333/")
        self.assertEqual(resp.data["data"]["records"]["WR"]["best"], 1000)

    def test_moderator_cannot_manage_foreign_contest(self):
        self.make_contest()
        self.client.force_authenticate(self.other_mod)
        resp = self.client.patch("/api/contests/spring-open/", {"contact": "x"}, format="json")
        self.assertEqual(resp.status_code, 403)
