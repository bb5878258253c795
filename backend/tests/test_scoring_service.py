"""
Tests for services/scoring_service.py — integrity score, streaks, units and
period summaries.
"""
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from services.schedule import PromiseDef
from services.scoring_service import (
    calculate_integrity_score,
    classify_integrity,
    current_streak,
    energy_trend,
    longest_streak,
    split_units,
    summarize,
)

MONDAY = date(2024, 1, 1)


def days(start, n):
    return [start + timedelta(days=i) for i in range(n)]


def plog(promise_id, day, completed=True):
    return SimpleNamespace(promise_id=promise_id, date=day, completed=completed)


def dlog(day, energy=4, units=None):
    return SimpleNamespace(date=day, energy=energy, units=units or {})


def daily_promise(pid=1, goal_id=10, days_=(1, 2, 3, 4, 5), text="Write 500 words", **kw):
    return PromiseDef(id=pid, goal_id=goal_id, goal_text="Thesis", text=text, type="daily", schedule_days=days_, **kw)


def weekly_promise(pid=2, goal_id=10, target=3, text="Gym", **kw):
    return PromiseDef(id=pid, goal_id=goal_id, goal_text="Thesis", text=text, type="weekly", weekly_target=target, **kw)


class TestIntegrityScore:
    def test_monotonic_in_action_and_clamped(self):
        for motion in range(0, 20, 3):
            scores = [calculate_integrity_score(motion, action) for action in range(0, 40)]
            assert scores == sorted(scores)
            assert all(0 <= s <= 100 for s in scores)

    @pytest.mark.parametrize("motion, action, expected", [
        (0, 0, 100),
        (10, 0, 0),
        (0, 10, 100),
        (1, 4, 90),
        (5, 5, 60),
        (3, 1, 30),
    ])
    def test_reference_points(self, motion, action, expected):
        assert calculate_integrity_score(motion, action) == expected

    def test_negative_and_missing_inputs(self):
        assert calculate_integrity_score(-3, 5) == 100
        assert calculate_integrity_score(None, None) == 100

    @pytest.mark.parametrize("score, band", [(100, "high"), (80, "high"), (79, "moderate"), (50, "moderate"), (49, "warning"), (0, "warning")])
    def test_bands(self, score, band):
        assert classify_integrity(score) == band


class TestStreaksUnitsEnergy:
    def test_longest_streak(self):
        logged = days(MONDAY, 3) + [date(2024, 1, 5), date(2024, 1, 6)]
        assert longest_streak(logged) == 3
        assert longest_streak([]) == 0

    def test_current_streak_grace_day(self):
        logged = days(MONDAY, 4)  # Mon..Thu
        assert current_streak(logged, date(2024, 1, 4)) == 4
        # Friday not logged yet: the streak still stands
        assert current_streak(logged, date(2024, 1, 5)) == 4
        assert current_streak(logged, date(2024, 1, 6)) == 0

    def test_split_units(self):
        logs = [dlog(MONDAY, units={"plan": 1, "write": 3, "skip": 0}), dlog(MONDAY, units='{"code": 2}')]
        assert split_units(logs) == (1, 5, 6)

    def test_energy_trend(self):
        assert energy_trend([5, 5, 3, 3]) == "down"
        assert energy_trend([2, 2, 4, 4]) == "up"
        assert energy_trend([3, 3, 3, 3]) == "stable"
        assert energy_trend([1, 5]) == "stable"


class TestSummarize:
    def test_five_weekdays_kept_scores_full_ratio(self):
        promise = daily_promise()
        logs = [plog(1, d) for d in days(MONDAY, 5)]

        summary = summarize(logs, [promise], MONDAY, date(2024, 1, 7))

        [ps] = summary.promises
        assert (ps.kept, ps.target) == (5, 5)
        assert ps.ratio == 1.0
        assert summary.kept_ratio == 1.0
        assert summary.days_logged == 5

    def test_weekly_three_of_three_versus_two(self):
        promise = weekly_promise(target=3)
        three = [plog(2, d) for d in (MONDAY, date(2024, 1, 3), date(2024, 1, 5))]

        full = summarize(three, [promise], MONDAY, date(2024, 1, 7))
        short = summarize(three[:2], [promise], MONDAY, date(2024, 1, 7))

        assert full.promises[0].ratio == 1.0
        assert full.promises[0].week_count == 3
        assert short.promises[0].ratio == pytest.approx(2 / 3)
        assert short.promises[0].week_count == 2

    def test_extra_weekly_completions_do_not_exceed_target(self):
        promise = weekly_promise(target=2)
        logs = [plog(2, d) for d in days(MONDAY, 5)]
        summary = summarize(logs, [promise], MONDAY, date(2024, 1, 7))
        assert (summary.promises[0].kept, summary.promises[0].target) == (2, 2)

    def test_partial_week_prorates_weekly_target(self):
        summary = summarize([], [weekly_promise(target=3)], MONDAY, date(2024, 1, 3))
        assert summary.promises[0].target == 1

    def test_daily_target_counts_due_days_only(self):
        mondays_only = daily_promise(days_=(1,))
        summary = summarize([plog(1, date(2024, 1, 2))], [mondays_only], MONDAY, date(2024, 1, 14))
        assert (summary.promises[0].kept, summary.promises[0].target) == (0, 2)
        assert summary.promises[0].week_ratios == [0.0, 0.0]

    def test_active_window_limits_target(self):
        promise = daily_promise(active_from=date(2024, 1, 8))
        summary = summarize([], [promise], MONDAY, date(2024, 1, 14))
        assert summary.promises[0].target == 5

    def test_goal_rollup(self):
        promises = [daily_promise(pid=1, goal_id=10), weekly_promise(pid=2, goal_id=10, target=2), daily_promise(pid=3, goal_id=11, text="Budget")]
        logs = [plog(1, MONDAY), plog(2, MONDAY), plog(2, date(2024, 1, 2)), plog(3, MONDAY, completed=False)]

        summary = summarize(logs, promises, MONDAY, date(2024, 1, 7))

        first, second = summary.goals
        assert (first.goal_id, first.kept, first.target) == (10, 3, 7)
        assert (second.goal_id, second.kept, second.target) == (11, 0, 5)
        assert (summary.promises_kept, summary.promises_target) == (3, 12)

    def test_energy_units_and_score(self):
        daily = [dlog(d, energy=e, units={"thesis": 3, "admin": 1}) for d, e in zip(days(MONDAY, 4), (4, 4, 2, 2))]
        summary = summarize([], [], MONDAY, date(2024, 1, 7), daily_logs=daily)

        assert summary.avg_energy == 3.0
        assert summary.energy_trend == "down"
        assert (summary.motion_units, summary.action_units, summary.total_units) == (4, 12, 16)
        assert summary.integrity_score == 60 + 25
        assert summary.integrity_band == "high"
        assert summary.longest_streak == 4

    def test_empty_input_degrades_gracefully(self):
        summary = summarize(None, None, MONDAY, date(2024, 1, 7))
        assert summary.goals == []
        assert summary.kept_ratio == 0.0
        assert summary.integrity_score == 100
        assert summary.days_logged == 0

    def test_inverted_period_is_empty(self):
        summary = summarize([plog(1, MONDAY)], [daily_promise()], date(2024, 1, 7), MONDAY)
        assert summary.goals == []
        assert summary.period_days == 0


class TestWeekAndDayBreakdown:
    @pytest.fixture
    def january(self):
        logs = [
            plog(1, date(2024, 1, 1)),
            plog(1, date(2024, 1, 2)),
            plog(1, date(2024, 1, 3), completed=False),
            plog(2, date(2024, 1, 3)),
            plog(2, date(2024, 1, 4)),
        ]
        return summarize(
            logs, [daily_promise(), weekly_promise()], MONDAY, date(2024, 1, 31),
            daily_logs=[dlog(date(2024, 1, 2))],
        )

    def test_weeks_follow_calendar_and_add_up(self, january):
        assert [(w.week_start, w.week_end) for w in january.weeks] == [
            (date(2024, 1, 1), date(2024, 1, 7)),
            (date(2024, 1, 8), date(2024, 1, 14)),
            (date(2024, 1, 15), date(2024, 1, 21)),
            (date(2024, 1, 22), date(2024, 1, 28)),
            (date(2024, 1, 29), date(2024, 1, 31)),
        ]
        first, last = january.weeks[0], january.weeks[-1]
        assert (first.kept, first.committed, first.ratio) == (4, 8, 0.5)
        # Mon-Wed: three writing days plus a prorated single gym visit
        assert (last.kept, last.committed) == (0, 4)
        assert sum(w.kept for w in january.weeks) == january.promises_kept
        assert sum(w.committed for w in january.weeks) == january.promises_target

    def test_days_cover_the_period(self, january):
        assert len(january.days) == 31
        by_date = {d.date: d for d in january.days}

        monday = by_date[date(2024, 1, 1)]
        assert (monday.kept, monday.committed, monday.ratio, monday.has_log) == (1, 1, 1.0, False)
        assert by_date[date(2024, 1, 2)].has_log is True

        wednesday = by_date[date(2024, 1, 3)]
        assert (wednesday.kept, wednesday.committed, wednesday.weekly_done) == (0, 1, 1)

        saturday = by_date[date(2024, 1, 6)]
        assert (saturday.committed, saturday.ratio) == (0, 0.0)

    def test_empty_period_has_no_breakdown(self):
        summary = summarize([], [], date(2024, 1, 7), MONDAY)
        assert summary.weeks == []
        assert summary.days == []
