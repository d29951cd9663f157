"""
Resume state for the quota-limited Firestore seeder.

The state file records how far the content walk got and how many writes
were spent today. Only one seeder process may use a state file at a time.
"""

import datetime
import json
import os
import tempfile
from typing import Optional

import structlog
from pydantic import ValidationError

from .exceptions import SeederError
from .models import ResumeState

logger = structlog.get_logger(__name__)


class StateStore:
    """Loads and atomically saves ResumeState as JSON."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> ResumeState:
        if not os.path.exists(self.path):
            logger.info("No resume state found, starting fresh", path=self.path)
            return ResumeState()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return ResumeState.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise SeederError(f"Corrupt resume state file {self.path}: {e}") from e

    def save(self, state: ResumeState) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        payload = state.model_dump(by_alias=True)
        # Write to a temp file then rename so a crash never leaves half a file
        fd, tmp_path = tempfile.mkstemp(prefix=".seed-state-", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug("Saved resume state", path=self.path, **payload)

    def reset(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
            logger.info("Removed resume state", path=self.path)


def roll_over(state: ResumeState, today: Optional[datetime.date] = None) -> ResumeState:
    """Reset the daily counter when the calendar date changed since the last run."""
    today_str = (today or datetime.date.today()).isoformat()
    if state.last_run_date != today_str:
        if state.last_run_date is not None:
            logger.info("New day, daily quota reset",
                        previous_date=state.last_run_date, previous_count=state.daily_processed_count)
        return state.model_copy(update={"last_run_date": today_str, "daily_processed_count": 0})
    return state


def remaining_quota(state: ResumeState, daily_limit: int) -> int:
    return max(daily_limit - state.daily_processed_count, 0)
