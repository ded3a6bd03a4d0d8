"""Fixed-interval spaced repetition scheduling.

Topics move through five stages. Each successful review advances one stage and
schedules the next review after the interval of the new stage:

    stage 0 -> 1 day, 1 -> 3 days, 2 -> 7 days, 3 -> 14 days, 4 -> 30 days

Stage 4 is the ceiling. Whether it keeps repeating every 30 days or becomes a
terminal "mastered" state is controlled by ``SchedulerConfig.repeat_final_interval``.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from memoryflow.models import Topic

INTERVALS = (1, 3, 7, 14, 30)
MAX_STAGE = len(INTERVALS) - 1

STAGE_LABELS = {
    0: "New",
    1: "3 days",
    2: "1 week",
    3: "2 weeks",
    4: "1 month",
}

Clock = Callable[[], datetime]


class InvalidTopicState(ValueError):
    """Raised when a topic's scheduling fields are out of range."""


class ReviewStatus(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class SchedulerConfig:
    repeat_final_interval: bool = True
    intervals: tuple[int, ...] = INTERVALS


def validate_topic(topic: Topic, max_stage: int = MAX_STAGE) -> None:
    if not 0 <= topic.current_stage <= max_stage:
        raise InvalidTopicState(
            f"stage {topic.current_stage} outside [0, {max_stage}] for topic {topic.id}"
        )
    if topic.review_count < 0:
        raise InvalidTopicState(
            f"negative review count {topic.review_count} for topic {topic.id}"
        )


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def stage_label(stage: int) -> str:
    return STAGE_LABELS.get(stage, f"Stage {stage}")


class ReviewScheduler:
    """Computes the next review state of a topic.

    All operations are pure: they validate the input topic and return a new
    ``Topic`` built with ``dataclasses.replace``. ``now`` defaults to the
    injected clock so callers and tests control time explicitly.
    """

    def __init__(self, config: Optional[SchedulerConfig] = None, clock: Clock = datetime.now):
        self.config = config or SchedulerConfig()
        self.clock = clock

    @property
    def max_stage(self) -> int:
        return len(self.config.intervals) - 1

    def _now(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else self.clock()

    def interval_for(self, stage: int) -> int:
        """Interval in days for a stage; out-of-range stages are clamped."""
        stage = min(max(stage, 0), self.max_stage)
        return self.config.intervals[stage]

    def next_review_date_for(self, stage: int, base: datetime) -> datetime:
        return base + timedelta(days=self.interval_for(stage))

    def schedule_new(self, topic: Topic, now: Optional[datetime] = None) -> Topic:
        """Place a freshly created topic at stage 0, due one first interval from now."""
        now = self._now(now)
        return replace(
            topic,
            current_stage=0,
            next_review_date=self.next_review_date_for(0, now),
            mastered=False,
        )

    def is_retired(self, topic: Topic) -> bool:
        """True when a mastered topic should no longer come up for review.

        Mastery only retires a topic while the final interval does not repeat;
        turning repetition back on brings mastered topics back into rotation.
        """
        return topic.mastered and not self.config.repeat_final_interval

    def advance(self, topic: Topic, now: Optional[datetime] = None, return_to_auto: bool = False) -> Topic:
        """Record a successful review and move the topic one stage forward.

        Args:
            topic: Topic being reviewed.
            now: Review time; defaults to the scheduler clock.
            return_to_auto: Drop a custom schedule and apply the interval ladder.

        Returns:
            A new Topic with stage, next review date, last review time and
            review count updated. Topics on a custom schedule only have the
            review counted unless ``return_to_auto`` is set.
        """
        validate_topic(topic, self.max_stage)
        now = self._now(now)

        if topic.use_custom_schedule and not return_to_auto:
            # Pinned review dates are kept; only the review itself is counted.
            return replace(topic, last_reviewed_at=now, review_count=topic.review_count + 1)

        next_stage = min(topic.current_stage + 1, self.max_stage)
        mastered = not self.config.repeat_final_interval and (
            topic.mastered or topic.current_stage == self.max_stage
        )
        return replace(
            topic,
            current_stage=next_stage,
            next_review_date=self.next_review_date_for(next_stage, now),
            last_reviewed_at=now,
            review_count=topic.review_count + 1,
            use_custom_schedule=False,
            custom_review_datetime=None,
            mastered=mastered,
        )

    def reset(self, topic: Topic, now: Optional[datetime] = None) -> Topic:
        """Send a topic back to stage 0, due in one day. Review count is kept."""
        validate_topic(topic, self.max_stage)
        now = self._now(now)
        return replace(
            topic,
            current_stage=0,
            next_review_date=self.next_review_date_for(0, now),
            use_custom_schedule=False,
            custom_review_datetime=None,
            mastered=False,
        )

    def classify(self, topic: Topic, now: Optional[datetime] = None) -> ReviewStatus:
        """Group a topic by calendar day relative to ``now``.

        Returns:
            OVERDUE if the review date is before midnight today, DUE_TODAY if
            it falls on today's date, UPCOMING otherwise.
        """
        validate_topic(topic, self.max_stage)
        now = self._now(now)
        due = topic.next_review_date
        if due < start_of_day(now):
            return ReviewStatus.OVERDUE
        if due.date() == now.date():
            return ReviewStatus.DUE_TODAY
        return ReviewStatus.UPCOMING

    def set_custom_schedule(self, topic: Topic, when: datetime) -> Topic:
        """Pin the next review to ``when``; reviews no longer advance the stage."""
        validate_topic(topic, self.max_stage)
        return replace(
            topic,
            use_custom_schedule=True,
            custom_review_datetime=when,
            next_review_date=when,
        )

    def remove_custom_schedule(
        self, topic: Topic, recalculate: bool = True, now: Optional[datetime] = None
    ) -> Topic:
        """Return to automatic scheduling.

        With ``recalculate`` the next review is the current stage interval
        counted from the last review (or ``now`` if never reviewed); otherwise
        the pinned date is kept.
        """
        validate_topic(topic, self.max_stage)
        next_review = topic.next_review_date
        if recalculate:
            base = topic.last_reviewed_at or self._now(now)
            next_review = self.next_review_date_for(topic.current_stage, base)
        return replace(
            topic,
            use_custom_schedule=False,
            custom_review_datetime=None,
            next_review_date=next_review,
        )

    def reschedule(self, topic: Topic, when: datetime, is_custom: bool) -> Topic:
        validate_topic(topic, self.max_stage)
        return replace(
            topic,
            next_review_date=when,
            use_custom_schedule=is_custom,
            custom_review_datetime=when if is_custom else None,
        )
