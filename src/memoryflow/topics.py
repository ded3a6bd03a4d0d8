"""Topic storage and review operations.

Every review, reset and reschedule goes through ``ReviewScheduler``; this
module only loads the topic, applies the scheduler and writes the result back.
"""
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from memoryflow.db import DEFAULT_CONTENT_DIR, get_connection
from memoryflow.logging import get_logger
from memoryflow.models import StreakTracker, Topic
from memoryflow.scheduler import ReviewScheduler, ReviewStatus, start_of_day
from memoryflow.settings import load_scheduler_config
from memoryflow.streaks import record_review_day

log = get_logger(__name__)


class TopicNotFoundError(LookupError):
    """Raised when no topic exists for an id."""


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _row_to_topic(row) -> Topic:
    return Topic(
        id=row["id"],
        title=row["title"],
        file_path=row["file_path"],
        created_at=_dt(row["created_at"]),
        next_review_date=_dt(row["next_review_date"]),
        current_stage=row["current_stage"],
        last_reviewed_at=_dt(row["last_reviewed_at"]),
        review_count=row["review_count"],
        tags=json.loads(row["tags"] or "[]"),
        is_favorite=bool(row["is_favorite"]),
        use_custom_schedule=bool(row["use_custom_schedule"]),
        custom_review_datetime=_dt(row["custom_review_datetime"]),
        mastered=bool(row["mastered"]),
    )


def _scheduler_for(db_path: str, scheduler: Optional[ReviewScheduler]) -> ReviewScheduler:
    return scheduler or ReviewScheduler(load_scheduler_config(db_path))


def create_topic(
    db_path: str,
    title: str,
    content: str = "",
    tags: Optional[list[str]] = None,
    now: Optional[datetime] = None,
    content_dir: str = DEFAULT_CONTENT_DIR,
    scheduler: Optional[ReviewScheduler] = None,
) -> Topic:
    """Create a topic at stage 0 and write its markdown body to disk.

    Args:
        db_path: SQLite database path.
        title: Topic title.
        content: Markdown body stored in ``content_dir/<id>.md``.
        tags: Optional list of tags.
        now: Creation time; defaults to the scheduler clock.
        content_dir: Directory holding topic content files.
        scheduler: Scheduler that sets the first review date.

    Returns:
        The stored Topic.
    """
    scheduler = _scheduler_for(db_path, scheduler)
    now = now or scheduler.clock()
    directory = Path(content_dir)
    directory.mkdir(parents=True, exist_ok=True)
    topic = scheduler.schedule_new(Topic.create(title, file_path="", now=now, tags=tags), now=now)
    topic.file_path = str(directory / f"{topic.id}.md")
    Path(topic.file_path).write_text(content)

    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO topics (id, title, file_path, created_at, current_stage, next_review_date,
        last_reviewed_at, review_count, tags, is_favorite, use_custom_schedule,
        custom_review_datetime, mastered)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            topic.id, topic.title, topic.file_path, _iso(topic.created_at), topic.current_stage,
            _iso(topic.next_review_date), None, topic.review_count, json.dumps(topic.tags),
            int(topic.is_favorite), 0, None, 0,
        ),
    )
    conn.commit()
    conn.close()
    log.info("topic_created", topic_id=topic.id, title=title)
    return topic


def get_topic(db_path: str, topic_id: str) -> Topic:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM topics WHERE id = ?", (topic_id,)).fetchone()
    conn.close()
    if row is None:
        raise TopicNotFoundError(f"Topic with ID {topic_id} not found")
    return _row_to_topic(row)


def list_topics(db_path: str) -> list[Topic]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM topics ORDER BY next_review_date ASC").fetchall()
    conn.close()
    return [_row_to_topic(r) for r in rows]


def _update_topic(conn, topic: Topic) -> None:
    cursor = conn.execute(
        """UPDATE topics SET title=?, file_path=?, current_stage=?, next_review_date=?,
        last_reviewed_at=?, review_count=?, tags=?, is_favorite=?, use_custom_schedule=?,
        custom_review_datetime=?, mastered=?
        WHERE id=?""",
        (
            topic.title, topic.file_path, topic.current_stage, _iso(topic.next_review_date),
            _iso(topic.last_reviewed_at), topic.review_count, json.dumps(topic.tags),
            int(topic.is_favorite), int(topic.use_custom_schedule),
            _iso(topic.custom_review_datetime), int(topic.mastered), topic.id,
        ),
    )
    if cursor.rowcount == 0:
        raise TopicNotFoundError(f"Topic with ID {topic.id} not found")


def save_topic(db_path: str, topic: Topic) -> None:
    conn = get_connection(db_path)
    try:
        _update_topic(conn, topic)
        conn.commit()
    finally:
        conn.close()


def delete_topic(db_path: str, topic_id: str) -> None:
    """Delete a topic, its review history and its content file."""
    topic = get_topic(db_path, topic_id)
    conn = get_connection(db_path)
    conn.execute("DELETE FROM review_log WHERE topic_id = ?", (topic_id,))
    conn.execute("DELETE FROM topics WHERE id = ?", (topic_id,))
    conn.commit()
    conn.close()
    Path(topic.file_path).unlink(missing_ok=True)
    log.info("topic_deleted", topic_id=topic_id)


def read_content(topic: Topic) -> str:
    path = Path(topic.file_path)
    return path.read_text() if path.exists() else ""


def review_topic(
    db_path: str,
    topic_id: str,
    streak: StreakTracker,
    now: Optional[datetime] = None,
    scheduler: Optional[ReviewScheduler] = None,
    return_to_auto: bool = False,
) -> tuple[Topic, StreakTracker]:
    """Mark a topic as reviewed.

    The topic update and its review_log row are written in one transaction.
    The streak is not persisted here; callers save the returned tracker.

    Returns:
        Tuple of the updated Topic and the StreakTracker advanced to the
        review day.
    """
    scheduler = _scheduler_for(db_path, scheduler)
    now = now or scheduler.clock()
    topic = get_topic(db_path, topic_id)
    updated = scheduler.advance(topic, now=now, return_to_auto=return_to_auto)
    conn = get_connection(db_path)
    try:
        _update_topic(conn, updated)
        conn.execute(
            "INSERT INTO review_log (topic_id, stage_before, stage_after, reviewed_at) VALUES (?, ?, ?, ?)",
            (topic_id, topic.current_stage, updated.current_stage, now.isoformat()),
        )
        conn.commit()
    finally:
        conn.close()

    log.info(
        "topic_reviewed",
        topic_id=topic_id,
        stage=updated.current_stage,
        next_review=updated.next_review_date.isoformat(),
        review_count=updated.review_count,
    )
    return updated, record_review_day(streak, now.date())


def reset_topic(
    db_path: str,
    topic_id: str,
    now: Optional[datetime] = None,
    scheduler: Optional[ReviewScheduler] = None,
) -> Topic:
    scheduler = _scheduler_for(db_path, scheduler)
    topic = get_topic(db_path, topic_id)
    updated = scheduler.reset(topic, now=now)
    save_topic(db_path, updated)
    log.info("topic_reset", topic_id=topic_id, previous_stage=topic.current_stage)
    return updated


def set_custom_schedule(
    db_path: str, topic_id: str, when: datetime, scheduler: Optional[ReviewScheduler] = None
) -> Topic:
    scheduler = _scheduler_for(db_path, scheduler)
    updated = scheduler.set_custom_schedule(get_topic(db_path, topic_id), when)
    save_topic(db_path, updated)
    log.info("custom_schedule_set", topic_id=topic_id, when=when.isoformat())
    return updated


def remove_custom_schedule(
    db_path: str,
    topic_id: str,
    recalculate: bool = True,
    now: Optional[datetime] = None,
    scheduler: Optional[ReviewScheduler] = None,
) -> Topic:
    scheduler = _scheduler_for(db_path, scheduler)
    updated = scheduler.remove_custom_schedule(
        get_topic(db_path, topic_id), recalculate=recalculate, now=now
    )
    save_topic(db_path, updated)
    log.info("custom_schedule_removed", topic_id=topic_id, next_review=updated.next_review_date.isoformat())
    return updated


def reschedule_topic(
    db_path: str,
    topic_id: str,
    when: datetime,
    is_custom: bool,
    scheduler: Optional[ReviewScheduler] = None,
) -> Topic:
    scheduler = _scheduler_for(db_path, scheduler)
    updated = scheduler.reschedule(get_topic(db_path, topic_id), when, is_custom)
    save_topic(db_path, updated)
    log.info("topic_rescheduled", topic_id=topic_id, when=when.isoformat(), is_custom=is_custom)
    return updated


def _by_status(
    db_path: str, statuses: set, now: Optional[datetime], scheduler: Optional[ReviewScheduler]
) -> list[Topic]:
    scheduler = _scheduler_for(db_path, scheduler)
    now = now or scheduler.clock()
    return [
        t for t in list_topics(db_path)
        if not scheduler.is_retired(t) and scheduler.classify(t, now) in statuses
    ]


def get_due_topics(
    db_path: str, now: Optional[datetime] = None, scheduler: Optional[ReviewScheduler] = None
) -> list[Topic]:
    """Topics due today or overdue, oldest first.

    Mastered topics are skipped while the final interval does not repeat.
    """
    return _by_status(db_path, {ReviewStatus.OVERDUE, ReviewStatus.DUE_TODAY}, now, scheduler)


def get_overdue_topics(
    db_path: str, now: Optional[datetime] = None, scheduler: Optional[ReviewScheduler] = None
) -> list[Topic]:
    return _by_status(db_path, {ReviewStatus.OVERDUE}, now, scheduler)


def get_upcoming_topics(
    db_path: str,
    days: int,
    now: Optional[datetime] = None,
    scheduler: Optional[ReviewScheduler] = None,
) -> list[Topic]:
    """Topics scheduled after today and within the next ``days`` days."""
    scheduler = _scheduler_for(db_path, scheduler)
    now = now or scheduler.clock()
    end = now + timedelta(days=days)
    return [
        t for t in _by_status(db_path, {ReviewStatus.UPCOMING}, now, scheduler)
        if t.next_review_date < end
    ]


def get_reviewed_today(
    db_path: str, now: Optional[datetime] = None, scheduler: Optional[ReviewScheduler] = None
) -> list[Topic]:
    now = now or _scheduler_for(db_path, scheduler).clock()
    today = start_of_day(now)
    return [
        t for t in list_topics(db_path)
        if t.last_reviewed_at is not None and t.last_reviewed_at >= today
    ]
