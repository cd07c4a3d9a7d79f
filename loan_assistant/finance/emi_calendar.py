"""EMI due-date calendar."""

from __future__ import annotations

import calendar
import uuid
from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class EMIEntry:
    name: str
    amount: float
    due_day: int  # day of month
    is_paid: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if not 1 <= self.due_day <= 31:
            raise ValueError(f"Due day must be between 1 and 31, got {self.due_day}")


class EMICalendar:
    """Recurring monthly EMIs keyed by their due day."""

    def __init__(self, entries: list[EMIEntry] | None = None):
        self.entries: list[EMIEntry] = list(entries or [])

    def add(self, entry: EMIEntry) -> None:
        self.entries.append(entry)

    def due_on(self, day: int) -> list[EMIEntry]:
        return [e for e in self.entries if e.due_day == day]

    @property
    def monthly_total(self) -> float:
        return sum(e.amount for e in self.entries)

    def upcoming(self, today: date | None = None, limit: int = 3) -> list[EMIEntry]:
        """The next EMIs due from today to the end of the month."""
        day = (today or date.today()).day
        pending = sorted(
            (e for e in self.entries if e.due_day >= day), key=lambda e: e.due_day
        )
        return pending[:limit]

    def month_grid(self, year: int, month: int) -> list[list[tuple[int, list[EMIEntry]]]]:
        """
        Weeks of (day, EMIs due) for a month, Sunday first.

        Days outside the month are 0. An EMI due on a day the month lacks
        (e.g. the 31st in April) falls on the month's last day.
        """
        last_day = calendar.monthrange(year, month)[1]
        weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdayscalendar(year, month)
        return [
            [(day, self._due_in_month(day, last_day) if day else []) for day in week]
            for week in weeks
        ]

    def _due_in_month(self, day: int, last_day: int) -> list[EMIEntry]:
        if day < last_day:
            return self.due_on(day)
        return [e for e in self.entries if e.due_day >= last_day]
