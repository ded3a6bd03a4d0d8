"""Persisted user settings: scheduler configuration and streak."""
import json
from datetime import date

from memoryflow.db import get_connection
from memoryflow.models import StreakTracker
from memoryflow.scheduler import SchedulerConfig

REPEAT_FINAL_INTERVAL = "repeat_final_interval"
STREAK = "streak"


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def load_scheduler_config(db_path: str) -> SchedulerConfig:
    repeat = get_setting(db_path, REPEAT_FINAL_INTERVAL, "1")
    return SchedulerConfig(repeat_final_interval=repeat == "1")


def set_repeat_final_interval(db_path: str, enabled: bool) -> None:
    set_setting(db_path, REPEAT_FINAL_INTERVAL, "1" if enabled else "0")


def load_streak(db_path: str) -> StreakTracker:
    raw = get_setting(db_path, STREAK)
    if not raw:
        return StreakTracker()
    data = json.loads(raw)
    last = data.get("last_review_day")
    return StreakTracker(
        current_streak=data.get("current_streak", 0),
        longest_streak=data.get("longest_streak", 0),
        last_review_day=date.fromisoformat(last) if last else None,
    )


def save_streak(db_path: str, tracker: StreakTracker) -> None:
    data = {
        "current_streak": tracker.current_streak,
        "longest_streak": tracker.longest_streak,
        "last_review_day": tracker.last_review_day.isoformat() if tracker.last_review_day else None,
    }
    set_setting(db_path, STREAK, json.dumps(data))
