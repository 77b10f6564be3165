from models import AuditReport, Category, CategoryShare, Task
from planner import round_half_up

HIGH_SCORE_HEADLINE = "You're crushing your goals. Keep this momentum!"
DEFAULT_HEADLINE = "Focused effort today will lead to a better tomorrow."


def build_audit(tasks: list[Task]) -> AuditReport:
    """
    Completion score and category distribution for the dashboard.
    An empty task list scores 0 rather than dividing by zero.
    """
    completed = sum(1 for t in tasks if t.completed)
    denominator = len(tasks) or 1
    score = round_half_up(completed / denominator * 100)

    categories = []
    for cat in Category:
        count = sum(1 for t in tasks if t.category == cat)
        categories.append(CategoryShare(name=cat, count=count, percent=count / denominator * 100))
    # sort is stable, so ties keep Category order
    categories.sort(key=lambda share: share.count, reverse=True)

    return AuditReport(
        score=score,
        total=len(tasks),
        completed=completed,
        active=len(tasks) - completed,
        success_rate=score,
        headline=HIGH_SCORE_HEADLINE if score > 70 else DEFAULT_HEADLINE,
        categories=categories,
    )
