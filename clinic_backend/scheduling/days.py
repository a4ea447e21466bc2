"""Day classification against a campus calendar.

Weekdays use the clinic's numbering, 0=Sunday through 6=Saturday, which is
not Python's ``date.weekday()`` numbering.
"""

from dataclasses import dataclass, field, replace
from datetime import date, timedelta


def clinic_weekday(day: date) -> int:
    return day.isoweekday() % 7


@dataclass(frozen=True)
class CalendarConfig:
    hidden_weekdays: frozenset[int] = field(default_factory=frozenset)
    half_day_weekdays: frozenset[int] = field(default_factory=frozenset)
    holidays: frozenset[date] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'hidden_weekdays', frozenset(self.hidden_weekdays))
        object.__setattr__(self, 'half_day_weekdays', frozenset(self.half_day_weekdays))
        object.__setattr__(self, 'holidays', frozenset(self.holidays))

        for weekday in self.hidden_weekdays | self.half_day_weekdays:
            if weekday < 0 or weekday > 6:
                raise ValueError(f'Invalid weekday {weekday}. Expected 0 (Sunday) through 6 (Saturday).')

        if len(self.hidden_weekdays) >= 7:
            raise ValueError('At least one weekday must remain open.')

    def with_holiday(self, holiday: date) -> 'CalendarConfig':
        return replace(self, holidays=self.holidays | {holiday})

    def without_holiday(self, holiday: date) -> 'CalendarConfig':
        return replace(self, holidays=self.holidays - {holiday})


@dataclass(frozen=True)
class DayClassification:
    hidden: bool
    holiday: bool
    half_day: bool
    past: bool

    @property
    def closed(self) -> bool:
        return self.hidden or self.holiday

    @property
    def bookable(self) -> bool:
        return not self.closed and not self.past


def is_hidden_weekday(day: date, config: CalendarConfig) -> bool:
    return clinic_weekday(day) in config.hidden_weekdays


def is_holiday(day: date, config: CalendarConfig) -> bool:
    return day in config.holidays


def is_half_day(day: date, config: CalendarConfig) -> bool:
    return clinic_weekday(day) in config.half_day_weekdays


def is_past_date(day: date, today: date | None = None) -> bool:
    return day < (today or date.today())


def should_skip_date(day: date, config: CalendarConfig) -> bool:
    return is_hidden_weekday(day, config) or is_holiday(day, config)


def get_next_valid_day(day: date, config: CalendarConfig) -> date:
    """Return the first date after ``day`` that is neither hidden nor a holiday."""
    next_day = day + timedelta(days=1)
    while should_skip_date(next_day, config):
        next_day += timedelta(days=1)
    return next_day


def classify_day(day: date, config: CalendarConfig, today: date | None = None) -> DayClassification:
    return DayClassification(
        hidden=is_hidden_weekday(day, config),
        holiday=is_holiday(day, config),
        half_day=is_half_day(day, config),
        past=is_past_date(day, today),
    )


def week_bounds(reference: date) -> tuple[date, date]:
    """Sunday-to-Saturday week containing ``reference``."""
    start = reference - timedelta(days=clinic_weekday(reference))
    return start, start + timedelta(days=6)


def visible_week_days(reference: date, config: CalendarConfig) -> list[date]:
    start, _ = week_bounds(reference)
    days = [start + timedelta(days=offset) for offset in range(7)]
    return [day for day in days if not is_hidden_weekday(day, config)]
