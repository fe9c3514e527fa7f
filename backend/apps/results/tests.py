from __future__ import annotations

from types import SimpleNamespace

from django.test import SimpleTestCase, override_settings

from apps.common.exceptions import ValidationError

from .formats import DNF, DNS, NO_AVERAGE, RoundFormat, compute_average, compute_best, sort_and_rank
from .participants import collect_participant_ids, join_person_ids, split_person_ids


# 测试用例：成绩计算、排名与参赛选手统计


class AttemptArithmeticTests(SimpleTestCase):
    """最好单次与平均的推导规则"""

    def test_best_ignores_dnf_and_dns(self):
        self.assertEqual(compute_best([DNF, 1200, DNS, 1100]), 1100)
        self.assertEqual(compute_best([DNF, DNS]), DNF)

    def test_average_of_five_drops_best_and_worst(self):
        self.assertEqual(compute_average([1000, 1100, 1200, 1300, 1400], RoundFormat.AVERAGE), 1200)

    def test_average_of_five_allows_one_dnf(self):
        # DNF 作为最差成绩被去掉
        self.assertEqual(compute_average([1000, DNF, 1200, 1300, 1400], RoundFormat.AVERAGE), 1300)
        self.assertEqual(compute_average([1000, DNF, DNS, 1300, 1400], RoundFormat.AVERAGE), DNF)

    def test_mean_of_three_rejects_dnf(self):
        self.assertEqual(compute_average([1000, 1100, 1201], RoundFormat.MEAN), 1100)
        self.assertEqual(compute_average([1000, DNF, 1200], RoundFormat.MEAN), DNF)

    def test_best_of_formats_have_no_average(self):
        self.assertEqual(compute_average([1000, 900], RoundFormat.BEST_OF_2), NO_AVERAGE)

    def test_incomplete_average_is_dnf(self):
        self.assertEqual(compute_average([1000, 1100, 1200], RoundFormat.AVERAGE), DNF)


class RankingTests(SimpleTestCase):
    """排名：平均优先，DNF 垫底，并列名次相同"""

    @staticmethod
    def _result(best, average):
        return SimpleNamespace(best=best, average=average, ranking=None)

    def test_average_format_sorts_by_average_then_best(self):
        a = self._result(900, 1200)
        b = self._result(1000, 1100)
        c = self._result(800, 1200)
        d = self._result(700, DNF)
        ordered = sort_and_rank([a, b, c, d], RoundFormat.AVERAGE)
        self.assertEqual(ordered, [b, c, a, d])
        self.assertEqual([r.ranking for r in ordered], [1, 2, 3, 4])

    def test_ties_share_ranking(self):
        a = self._result(900, NO_AVERAGE)
        b = self._result(900, NO_AVERAGE)
        c = self._result(1000, NO_AVERAGE)
        ordered = sort_and_rank([c, a, b], RoundFormat.BEST_OF_1)
        self.assertEqual([r.ranking for r in ordered], [1, 1, 3])


class ParticipantAggregatorTests(SimpleTestCase):
    """选手标识解析与去重统计"""

    def test_split_person_ids(self):
        self.assertEqual(split_person_ids("5;9"), [5, 9])
        self.assertEqual(split_person_ids(12), [12])
        self.assertEqual(split_person_ids(["3", 4]), [3, 4])

    def test_split_rejects_malformed_tokens(self):
        for value in ("5;x", "", None, "0", [True]):
            with self.assertRaises(ValidationError):
                split_person_ids(value)

    @override_settings(CONTEST_PERSON_ID_DELIMITER="|")
    def test_delimiter_is_configurable(self):
        self.assertEqual(split_person_ids("5|9"), [5, 9])
        self.assertEqual(join_person_ids([5, 9]), "5|9")

    def test_collect_unique_participants(self):
        rounds = [
            {"results": [{"person_ids": split_person_ids("5;9")}, {"person_ids": split_person_ids("9")}]},
            SimpleNamespace(results=[SimpleNamespace(person_ids=split_person_ids("12"))]),
        ]
        self.assertEqual(collect_participant_ids(rounds), {5, 9, 12})

    def test_collect_from_empty_rounds(self):
        self.assertEqual(collect_participant_ids([{"results": []}, SimpleNamespace(results=None)]), set())
