"""Data classes for the review domain model."""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass
class Topic:
    id: str
    title: str
    file_path: str
    created_at: datetime
    next_review_date: datetime
    current_stage: int = 0
    last_reviewed_at: Optional[datetime] = None
    review_count: int = 0
    tags: list[str] = field(default_factory=list)
    is_favorite: bool = False
    use_custom_schedule: bool = False
    custom_review_datetime: Optional[datetime] = None
    mastered: bool = False

    @classmethod
    def create(cls, title: str, file_path: str, now: datetime, tags: Optional[list[str]] = None) -> "Topic":
        """Build an unscheduled topic; ``ReviewScheduler.schedule_new`` sets its first review."""
        return cls(
            id=uuid.uuid4().hex,
            title=title,
            file_path=file_path,
            created_at=now,
            next_review_date=now,
            tags=list(tags or []),
        )


@dataclass(frozen=True)
class StreakTracker:
    current_streak: int = 0
    longest_streak: int = 0
    last_review_day: Optional[date] = None
