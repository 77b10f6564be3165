"""
Tests for audit.py - completion score and category distribution.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from audit import DEFAULT_HEADLINE, HIGH_SCORE_HEADLINE, build_audit
from models import Category, Task


def make_task(task_id, category=Category.OTHER, completed=False):
    return Task(id=task_id, name=task_id, category=category, completed=completed,
                created_at="2025-01-20T09:00:00")


class TestAudit:

    def test_empty(self):
        """No tasks scores zero without dividing by zero."""
        report = build_audit([])
        assert report.score == 0
        assert report.total == 0
        assert report.active == 0
        assert report.headline == DEFAULT_HEADLINE
        assert all(c.count == 0 and c.percent == 0 for c in report.categories)

    def test_score(self):
        tasks = [make_task("a", completed=True), make_task("b"), make_task("c")]
        report = build_audit(tasks)
        assert report.score == 33
        assert report.success_rate == 33
        assert report.completed == 1
        assert report.active == 2

    def test_headline_threshold(self):
        """Score must be above 70 for the high headline."""
        seven_of_ten = [make_task(str(i), completed=i < 7) for i in range(10)]
        assert build_audit(seven_of_ten).headline == DEFAULT_HEADLINE

        eight_of_ten = [make_task(str(i), completed=i < 8) for i in range(10)]
        assert build_audit(eight_of_ten).headline == HIGH_SCORE_HEADLINE

    def test_half_score_rounds_up(self):
        tasks = [make_task(str(i), completed=i < 1) for i in range(8)]
        assert build_audit(tasks).score == 13

    def test_category_distribution_sorted(self):
        tasks = [
            make_task("1", Category.HEALTH),
            make_task("2", Category.HEALTH),
            make_task("3", Category.FINANCE),
            make_task("4", Category.HEALTH),
        ]
        report = build_audit(tasks)

        assert report.categories[0].name == Category.HEALTH
        assert report.categories[0].count == 3
        assert report.categories[0].percent == 75
        assert report.categories[1].name == Category.FINANCE
        assert report.categories[1].percent == 25

    def test_ties_keep_category_order(self):
        report = build_audit([])
        assert [c.name for c in report.categories] == list(Category)

    def test_every_category_listed(self):
        report = build_audit([make_task("1", Category.WORK)])
        assert len(report.categories) == len(Category)
