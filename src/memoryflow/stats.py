"""Scheduling statistics for the dashboard."""
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from memoryflow.db import get_connection
from memoryflow.scheduler import ReviewScheduler, ReviewStatus
from memoryflow.settings import load_scheduler_config
from memoryflow.topics import list_topics


def get_scheduling_stats(
    db_path: str, now: Optional[datetime] = None, scheduler: Optional[ReviewScheduler] = None
) -> dict:
    """Summarize the review schedule.

    Args:
        db_path: SQLite database path.
        now: Reference time; defaults to the scheduler clock.
        scheduler: Scheduler used to classify topics.

    Returns:
        Dict with total_topics, due_today, overdue, upcoming_7_days,
        total_reviews, custom_schedules, mastered, average_reviews and
        stage_distribution. Retired mastered topics are left out of the
        due_today, overdue and upcoming_7_days buckets.
    """
    scheduler = scheduler or ReviewScheduler(load_scheduler_config(db_path))
    now = now or scheduler.clock()
    week_ahead = now + timedelta(days=7)
    topics = list_topics(db_path)

    active = [t for t in topics if not scheduler.is_retired(t)]

    statuses = Counter(scheduler.classify(t, now) for t in active)
    upcoming_7_days = sum(
        1 for t in active
        if scheduler.classify(t, now) == ReviewStatus.UPCOMING and t.next_review_date < week_ahead
    )
    total_reviews = sum(t.review_count for t in topics)
    return {
        "total_topics": len(topics),
        "due_today": statuses[ReviewStatus.DUE_TODAY],
        "overdue": statuses[ReviewStatus.OVERDUE],
        "upcoming_7_days": upcoming_7_days,
        "total_reviews": total_reviews,
        "custom_schedules": sum(1 for t in topics if t.use_custom_schedule),
        "mastered": sum(1 for t in topics if t.mastered),
        "average_reviews": round(total_reviews / len(topics), 1) if topics else 0.0,
        "stage_distribution": dict(sorted(Counter(t.current_stage for t in topics).items())),
    }


def get_review_history(
    db_path: str,
    days: int = 30,
    now: Optional[datetime] = None,
    scheduler: Optional[ReviewScheduler] = None,
) -> dict[str, int]:
    """Number of reviews per calendar day over the last ``days`` days."""
    if now is None:
        now = (scheduler or ReviewScheduler(load_scheduler_config(db_path))).clock()
    since = (now - timedelta(days=days)).date().isoformat()
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT substr(reviewed_at, 1, 10) as day, COUNT(*) as n
        FROM review_log
        WHERE substr(reviewed_at, 1, 10) > ?
        GROUP BY day ORDER BY day""",
        (since,),
    ).fetchall()
    conn.close()
    return {r["day"]: r["n"] for r in rows}
