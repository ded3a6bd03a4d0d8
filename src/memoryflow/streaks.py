"""Daily review streak tracking."""
from dataclasses import replace
from datetime import date, timedelta

from memoryflow.models import StreakTracker


def record_review_day(tracker: StreakTracker, day: date) -> StreakTracker:
    """Return the tracker updated for a review on ``day``.

    Several reviews on the same day count once. A review on the day after the
    last one extends the streak; any longer gap starts a new streak at 1.
    """
    last = tracker.last_review_day
    if last is not None and day <= last:
        return tracker
    if last is not None and day - last == timedelta(days=1):
        current = tracker.current_streak + 1
    else:
        current = 1
    return replace(
        tracker,
        current_streak=current,
        longest_streak=max(tracker.longest_streak, current),
        last_review_day=day,
    )


def current_streak_as_of(tracker: StreakTracker, day: date) -> int:
    """Streak length as seen on ``day``; broken once a full day is missed."""
    if tracker.last_review_day is None:
        return 0
    if (day - tracker.last_review_day).days > 1:
        return 0
    return tracker.current_streak
