"""End-to-end diffs of a deep e-learning analytics snapshot."""

from __future__ import annotations

import datetime
import json
import random
import unittest
from decimal import Decimal

from snapdiff.core.diff import diff
from snapdiff.core.registry import EngineRegistry

from elearning_model import (
    DailyActiveUsers,
    ElearningPlatformAnalyticsSnapshot,
    Grade,
    RecentError,
    TimeSeries,
    UniversityPlan,
    build_snapshot,
)

COURSE = [
    "universities", "[0]", "departments", "[0]", "course_instances", "[0]",
]


def _nest(path, leaf):
    """Wrap ``leaf`` in one object per key of ``path``, outermost first."""
    for key in reversed(path):
        leaf = {key: leaf}
    return leaf


def _course(snapshot):
    return snapshot.universities[0].departments[0].course_instances[0]


class TestReflexive(unittest.TestCase):
    def test_equal_snapshots(self):
        self.assertEqual(diff(build_snapshot(), build_snapshot()), "{}")

    def test_same_instance(self):
        snapshot = build_snapshot()
        self.assertEqual(diff(snapshot, snapshot), "{}")

    def test_null_against_default_snapshot(self):
        self.assertEqual(diff(None, ElearningPlatformAnalyticsSnapshot()), "{}")

    def test_null_against_populated_snapshot(self):
        result = json.loads(diff(None, build_snapshot()))
        self.assertEqual(
            result["overview"]["total_students"], {"OldValue": 0, "NewValue": 15000}
        )
        self.assertEqual(
            result["universities"]["[0]"]["Operation"], "Added"
        )


class TestTargetedChanges(unittest.TestCase):
    def setUp(self):
        self.old = build_snapshot()
        self.new = build_snapshot()

    def assertDiff(self, expected):
        self.assertEqual(json.loads(diff(self.old, self.new)), expected)

    def test_overview_scalar(self):
        self.new.overview.total_students = 15001
        self.assertEqual(
            diff(self.old, self.new),
            '{"overview":{"total_students":{"OldValue":15000,"NewValue":15001}}}',
        )

    def test_decimal_revenue(self):
        self.new.overview.total_revenue_this_month = Decimal("125001.00")
        self.assertEqual(
            diff(self.old, self.new),
            '{"overview":{"total_revenue_this_month":'
            '{"OldValue":125000.50,"NewValue":125001.00}}}',
        )

    def test_generic_time_series(self):
        self.new.overview.engagement.daily_active.data_points[1].count = 1200
        self.assertDiff(
            _nest(
                ["overview", "engagement", "daily_active", "data_points", "[1]", "count"],
                {"OldValue": 1150, "NewValue": 1200},
            )
        )

    def test_enum_plan(self):
        self.new.universities[0].plan = UniversityPlan.ENTERPRISE
        self.assertDiff(
            _nest(
                ["universities", "[0]", "plan"],
                {"OldValue": "PRO", "NewValue": "ENTERPRISE"},
            )
        )

    def test_deep_transcript_line(self):
        course = _course(self.new)
        video = course.template.curriculum.modules[0].contents[0].video
        video.transcript.lines[1].text = "Let's begin."
        path = COURSE + [
            "template", "curriculum", "modules", "[0]", "contents", "[0]",
            "video", "transcript", "lines", "[1]", "text",
        ]
        self.assertDiff(
            _nest(path, {"OldValue": "Let us begin.", "NewValue": "Let's begin."})
        )

    def test_nested_removed_reads_defaults(self):
        _course(self.new).template.curriculum.modules[0].contents[1].pdf = None
        path = COURSE + [
            "template", "curriculum", "modules", "[0]", "contents", "[1]", "pdf",
        ]
        self.assertDiff(
            _nest(
                path,
                {
                    "url": {"OldValue": "https://cdn.example.com/p/1", "NewValue": ""},
                    "page_count": {"OldValue": 12, "NewValue": 0},
                },
            )
        )

    def test_nested_added_compared_to_defaults(self):
        _course(self.new).enrolled_students[0].final_grade = Grade(Decimal("3.7"), "A-")
        path = COURSE + ["enrolled_students", "[0]", "final_grade"]
        self.assertDiff(
            _nest(
                path,
                {
                    "value": {"OldValue": 0, "NewValue": 3.7},
                    "letter": {"OldValue": "", "NewValue": "A-"},
                },
            )
        )

    def test_list_item_added(self):
        self.new.health.recent_errors.append(
            RecentError(datetime.datetime(2024, 3, 4, 1, 2, 3), "db timeout", "", "Critical")
        )
        self.assertEqual(
            diff(self.old, self.new),
            '{"health":{"recent_errors":{"[0]":{"Operation":"Added","NewValue":'
            '{"message":"db timeout","occurred_at":"2024-03-04T01:02:03",'
            '"severity":"Critical","stack_trace":""}}}}}',
        )

    def test_list_item_removed(self):
        self.new.overview.engagement.daily_active = TimeSeries(
            data_points=[DailyActiveUsers(datetime.date(2024, 3, 1), 1100)]
        )
        self.assertDiff(
            _nest(
                ["overview", "engagement", "daily_active", "data_points", "[1]"],
                {"Operation": "Removed", "OldValue": {"count": 1150, "date": "2024-03-02"}},
            )
        )

    def test_map_value_change_reports_whole_map(self):
        progress = _course(self.new).enrolled_students[0].module_progresses[1]
        progress.time_spent_seconds = 6000
        result = json.loads(diff(self.old, self.new))
        node = result
        for key in COURSE + ["enrolled_students", "[0]"]:
            node = node[key]
        self.assertEqual(list(node), ["module_progresses"])
        change = node["module_progresses"]
        self.assertEqual(change["OldValue"]["1"]["time_spent_seconds"], 5400)
        self.assertEqual(change["NewValue"]["1"]["time_spent_seconds"], 6000)

    def test_shared_object_reported_at_every_path(self):
        badges = self.new.leaderboard.monthly_top[0].badges
        badges.badge_earned_at["streak-30"] = datetime.datetime(2024, 2, 21)
        result = json.loads(diff(self.old, self.new))
        self.assertEqual(list(result), ["universities", "leaderboard"])
        change = result["leaderboard"]["monthly_top"]["[0]"]["badges"]["badge_earned_at"]
        self.assertEqual(change["OldValue"]["streak-30"], "2024-02-20T00:00:00")
        self.assertEqual(change["NewValue"]["streak-30"], "2024-02-21T00:00:00")

    def test_root_fields_in_declaration_order(self):
        self.new.health.database.is_healthy = False
        self.new.info.captured_by = "manual"
        self.new.overview.active_today = 1
        self.new.raw_metrics["requests"] = 2
        result = json.loads(diff(self.old, self.new))
        self.assertEqual(list(result), ["info", "overview", "health", "raw_metrics"])


class TestMapOrdering(unittest.TestCase):
    def test_raw_metrics_insertion_order(self):
        old = build_snapshot()
        new = build_snapshot()
        new.raw_metrics = {"regions": {"us": 0.6, "eu": 0.4}, "requests": 1000000}
        self.assertEqual(diff(old, new), "{}")

    def test_randomized_badge_order(self):
        rng = random.Random(11)
        old = build_snapshot()
        for _ in range(10):
            new = build_snapshot()
            badges = new.leaderboard.monthly_top[0].badges
            entries = list(badges.badge_earned_at.items())
            rng.shuffle(entries)
            badges.badge_earned_at = dict(entries)
            self.assertEqual(diff(old, new), "{}")


class TestDeterminism(unittest.TestCase):
    def test_repeated_diffs_identical(self):
        old = build_snapshot()
        new = build_snapshot()
        new.overview.total_students = 1
        new.universities[0].name = "Southwind University"
        _course(new).forum.total_posts = 90
        new.raw_metrics["regions"] = {"eu": 0.5, "us": 0.5}

        first = diff(old, new)
        for _ in range(10):
            self.assertEqual(diff(old, new), first)
        # A fresh registry builds new engines that render identically
        self.assertEqual(diff(old, new, registry=EngineRegistry()), first)

    def test_generic_shape_has_its_own_engine(self):
        registry = EngineRegistry()
        diff(build_snapshot(), build_snapshot(), registry=registry)
        self.assertIn(TimeSeries[DailyActiveUsers], registry)


if __name__ == "__main__":
    unittest.main()
