# tests/test_scheduler.py
from datetime import datetime, timedelta

import pytest

from memoryflow.models import Topic
from memoryflow.scheduler import (
    INTERVALS, InvalidTopicState, ReviewScheduler, ReviewStatus, SchedulerConfig, stage_label,
)

NOW = datetime(2024, 3, 15, 8, 0)


def make_topic(stage=0, review_count=0, next_review=None, **kwargs):
    topic = Topic.create("Photosynthesis", file_path="/tmp/x.md", now=NOW - timedelta(days=10))
    topic.current_stage = stage
    topic.review_count = review_count
    if next_review is not None:
        topic.next_review_date = next_review
    for key, value in kwargs.items():
        setattr(topic, key, value)
    return topic


@pytest.mark.parametrize("stage", range(5))
def test_advance_moves_one_stage_up_to_ceiling(scheduler, stage):
    updated = scheduler.advance(make_topic(stage=stage))
    assert updated.current_stage == min(stage + 1, 4)


@pytest.mark.parametrize("stage", range(5))
def test_advance_schedules_exact_interval(scheduler, stage):
    updated = scheduler.advance(make_topic(stage=stage))
    expected_stage = min(stage + 1, 4)
    assert updated.next_review_date == NOW + timedelta(days=INTERVALS[expected_stage])


def test_advance_increments_review_count_and_sets_last_reviewed(scheduler):
    updated = scheduler.advance(make_topic(stage=2, review_count=7))
    assert updated.review_count == 8
    assert updated.last_reviewed_at == NOW


def test_advance_does_not_mutate_input(scheduler):
    topic = make_topic(stage=1, review_count=1)
    scheduler.advance(topic)
    assert topic.current_stage == 1
    assert topic.review_count == 1
    assert topic.last_reviewed_at is None


def test_stage_zero_review_is_due_in_three_days(scheduler):
    updated = scheduler.advance(make_topic(stage=0))
    assert updated.current_stage == 1
    assert updated.next_review_date == NOW + timedelta(days=3)


def test_stage_four_stays_at_ceiling_with_thirty_days(scheduler):
    updated = scheduler.advance(make_topic(stage=4))
    assert updated.current_stage == 4
    assert updated.next_review_date == NOW + timedelta(days=30)
    assert updated.mastered is False


def test_stage_four_becomes_mastered_when_final_interval_does_not_repeat():
    scheduler = ReviewScheduler(SchedulerConfig(repeat_final_interval=False), clock=lambda: NOW)
    updated = scheduler.advance(make_topic(stage=4, review_count=4))
    assert updated.mastered is True
    assert updated.current_stage == 4
    assert updated.review_count == 5


def test_reaching_stage_four_is_not_mastered_yet():
    scheduler = ReviewScheduler(SchedulerConfig(repeat_final_interval=False), clock=lambda: NOW)
    updated = scheduler.advance(make_topic(stage=3))
    assert updated.current_stage == 4
    assert updated.mastered is False


def test_explicit_now_overrides_clock(scheduler):
    later = NOW + timedelta(hours=5, minutes=3)
    updated = scheduler.advance(make_topic(stage=0), now=later)
    assert updated.next_review_date == later + timedelta(days=3)
    assert updated.last_reviewed_at == later


def test_advance_with_custom_schedule_only_counts_review(scheduler):
    pinned = NOW + timedelta(days=5)
    topic = make_topic(stage=2, review_count=3, next_review=pinned,
                       use_custom_schedule=True, custom_review_datetime=pinned)
    updated = scheduler.advance(topic)
    assert updated.current_stage == 2
    assert updated.next_review_date == pinned
    assert updated.review_count == 4
    assert updated.last_reviewed_at == NOW
    assert updated.use_custom_schedule is True


def test_advance_return_to_auto_clears_custom_schedule(scheduler):
    pinned = NOW + timedelta(days=5)
    topic = make_topic(stage=2, next_review=pinned,
                       use_custom_schedule=True, custom_review_datetime=pinned)
    updated = scheduler.advance(topic, return_to_auto=True)
    assert updated.current_stage == 3
    assert updated.next_review_date == NOW + timedelta(days=14)
    assert updated.use_custom_schedule is False
    assert updated.custom_review_datetime is None


@pytest.mark.parametrize("stage", range(5))
def test_reset_returns_to_stage_zero_due_tomorrow(scheduler, stage):
    updated = scheduler.reset(make_topic(stage=stage, review_count=6))
    assert updated.current_stage == 0
    assert updated.next_review_date == NOW + timedelta(days=1)
    assert updated.review_count == 6


def test_reset_stage_three_keeps_review_count(scheduler):
    updated = scheduler.reset(make_topic(stage=3, review_count=3))
    assert updated.current_stage == 0
    assert updated.next_review_date == NOW + timedelta(days=1)
    assert updated.review_count == 3


def test_reset_clears_custom_schedule_and_mastered(scheduler):
    topic = make_topic(stage=4, use_custom_schedule=True,
                       custom_review_datetime=NOW, mastered=True)
    updated = scheduler.reset(topic)
    assert updated.use_custom_schedule is False
    assert updated.custom_review_datetime is None
    assert updated.mastered is False


def test_classify_yesterday_is_overdue(scheduler):
    topic = make_topic(next_review=NOW - timedelta(days=1))
    assert scheduler.classify(topic) == ReviewStatus.OVERDUE


def test_classify_late_today_is_due_today(scheduler):
    topic = make_topic(next_review=NOW.replace(hour=23, minute=59))
    assert scheduler.classify(topic) == ReviewStatus.DUE_TODAY


def test_classify_earlier_today_is_due_today_not_overdue(scheduler):
    topic = make_topic(next_review=NOW.replace(hour=0, minute=0))
    assert scheduler.classify(topic) == ReviewStatus.DUE_TODAY


def test_classify_midnight_tomorrow_is_upcoming(scheduler):
    tomorrow = (NOW + timedelta(days=1)).replace(hour=0, minute=0)
    assert scheduler.classify(make_topic(next_review=tomorrow)) == ReviewStatus.UPCOMING


def test_classify_last_microsecond_yesterday_is_overdue(scheduler):
    edge = NOW.replace(hour=0, minute=0) - timedelta(microseconds=1)
    assert scheduler.classify(make_topic(next_review=edge)) == ReviewStatus.OVERDUE


def test_classify_is_idempotent(scheduler):
    topic = make_topic(next_review=NOW + timedelta(hours=3))
    assert scheduler.classify(topic, NOW) == scheduler.classify(topic, NOW)


def test_classify_partitions_a_range_of_timestamps(scheduler):
    for hours in range(-72, 73, 5):
        due = NOW + timedelta(hours=hours)
        status = scheduler.classify(make_topic(next_review=due))
        if due.date() < NOW.date():
            assert status == ReviewStatus.OVERDUE
        elif due.date() == NOW.date():
            assert status == ReviewStatus.DUE_TODAY
        else:
            assert status == ReviewStatus.UPCOMING


@pytest.mark.parametrize("stage", [-1, 5, 42])
def test_out_of_range_stage_is_rejected(scheduler, stage):
    with pytest.raises(InvalidTopicState):
        scheduler.advance(make_topic(stage=stage))
    with pytest.raises(InvalidTopicState):
        scheduler.reset(make_topic(stage=stage))
    with pytest.raises(InvalidTopicState):
        scheduler.classify(make_topic(stage=stage))


def test_negative_review_count_is_rejected(scheduler):
    with pytest.raises(InvalidTopicState):
        scheduler.advance(make_topic(review_count=-1))


def test_invalid_topic_state_is_value_error():
    assert issubclass(InvalidTopicState, ValueError)


def test_next_review_date_for_clamps_stage(scheduler):
    base = datetime(2024, 1, 1)
    assert scheduler.next_review_date_for(0, base) == datetime(2024, 1, 2)
    assert scheduler.next_review_date_for(2, base) == datetime(2024, 1, 8)
    assert scheduler.next_review_date_for(5, base) == datetime(2024, 1, 31)
    assert scheduler.next_review_date_for(-3, base) == datetime(2024, 1, 2)


def test_set_custom_schedule_pins_review_date(scheduler):
    when = NOW + timedelta(days=2, hours=3)
    updated = scheduler.set_custom_schedule(make_topic(stage=1), when)
    assert updated.use_custom_schedule is True
    assert updated.custom_review_datetime == when
    assert updated.next_review_date == when


def test_remove_custom_schedule_recalculates_from_last_review(scheduler):
    last = NOW - timedelta(days=1)
    topic = make_topic(stage=2, last_reviewed_at=last, use_custom_schedule=True,
                       custom_review_datetime=NOW + timedelta(days=40))
    updated = scheduler.remove_custom_schedule(topic)
    assert updated.use_custom_schedule is False
    assert updated.custom_review_datetime is None
    assert updated.next_review_date == last + timedelta(days=7)


def test_remove_custom_schedule_without_last_review_uses_now(scheduler):
    topic = make_topic(stage=1, use_custom_schedule=True)
    updated = scheduler.remove_custom_schedule(topic)
    assert updated.next_review_date == NOW + timedelta(days=3)


def test_remove_custom_schedule_can_keep_date(scheduler):
    pinned = NOW + timedelta(days=9)
    topic = make_topic(stage=1, next_review=pinned, use_custom_schedule=True,
                       custom_review_datetime=pinned)
    updated = scheduler.remove_custom_schedule(topic, recalculate=False)
    assert updated.next_review_date == pinned
    assert updated.use_custom_schedule is False


def test_reschedule_non_custom(scheduler):
    when = NOW + timedelta(days=4)
    updated = scheduler.reschedule(make_topic(stage=1), when, is_custom=False)
    assert updated.next_review_date == when
    assert updated.use_custom_schedule is False
    assert updated.custom_review_datetime is None


def test_stage_labels():
    assert stage_label(0) == "New"
    assert stage_label(1) == "3 days"
    assert stage_label(4) == "1 month"
    assert stage_label(9) == "Stage 9"


def test_schedule_new_uses_first_interval_and_clock(scheduler):
    topic = Topic.create("Osmosis", file_path="o.md", now=NOW)
    placed = scheduler.schedule_new(topic)
    assert placed.current_stage == 0
    assert placed.next_review_date == NOW + timedelta(days=1)


def test_schedule_new_follows_configured_intervals():
    scheduler = ReviewScheduler(SchedulerConfig(intervals=(2, 4, 8, 16, 32)), clock=lambda: NOW)
    placed = scheduler.schedule_new(Topic.create("Osmosis", file_path="o.md", now=NOW))
    assert placed.next_review_date == NOW + timedelta(days=2)


def test_mastered_topic_repeats_again_when_final_interval_reenabled():
    strict = ReviewScheduler(SchedulerConfig(repeat_final_interval=False), clock=lambda: NOW)
    mastered = strict.advance(make_topic(stage=4))
    assert strict.is_retired(mastered) is True

    repeating = ReviewScheduler(clock=lambda: NOW)
    assert repeating.is_retired(mastered) is False
    again = repeating.advance(mastered)
    assert again.mastered is False
    assert again.next_review_date == NOW + timedelta(days=30)
