"""Calendar and time-of-day buckets used by event discovery.

Everything here is pure: callers pass `now` so windows can be tested
without a clock. Windows are computed in `now`'s own timezone and are
inclusive on both ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Optional, Tuple


class DateRange(str, Enum):
	TODAY = "today"
	TOMORROW = "tomorrow"
	WEEKEND = "weekend"
	NEXTWEEK = "nextweek"

	@classmethod
	def parse(cls, raw: object) -> Optional["DateRange"]:
		"""Unknown names impose no constraint."""
		try:
			return cls(str(raw).strip().lower()) if raw else None
		except ValueError:
			return None


class TimeOfDay(str, Enum):
	MORNING = "morning"
	AFTERNOON = "afternoon"
	EVENING = "evening"
	NIGHT = "night"

	@classmethod
	def parse(cls, raw: object) -> Optional["TimeOfDay"]:
		try:
			return cls(str(raw).strip().lower()) if raw else None
		except ValueError:
			return None


# [start, end) hours; 00:00-04:59 belongs to no bucket
_HOURS = {
	TimeOfDay.MORNING: (5, 12),
	TimeOfDay.AFTERNOON: (12, 17),
	TimeOfDay.EVENING: (17, 21),
	TimeOfDay.NIGHT: (21, 24),
}

_END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True, slots=True)
class DateWindow:
	start: datetime
	end: datetime

	def contains(self, moment: datetime) -> bool:
		return self.start <= moment <= self.end


def hour_range(bucket: TimeOfDay) -> Tuple[int, int]:
	return _HOURS[bucket]


def in_time_of_day(bucket: TimeOfDay, hour: int) -> bool:
	start, end = _HOURS[bucket]
	return start <= hour < end


def _sunday_first_weekday(moment: datetime) -> int:
	# Python counts Monday as 0; buckets count Sunday as 0
	return (moment.weekday() + 1) % 7


def _day_start(moment: datetime, offset_days: int = 0) -> datetime:
	day = moment.date() + timedelta(days=offset_days)
	return datetime.combine(day, time.min, tzinfo=moment.tzinfo)


def _day_end(moment: datetime, offset_days: int = 0) -> datetime:
	day = moment.date() + timedelta(days=offset_days)
	return datetime.combine(day, _END_OF_DAY, tzinfo=moment.tzinfo)


def resolve_date_window(bucket: DateRange, now: datetime) -> DateWindow:
	"""Turn a named bucket into an inclusive [start, end] window around `now`.

	`weekend` is the upcoming Saturday through the upcoming Sunday. On a
	Sunday the window starts next Saturday and ends today, so it is empty.
	`nextweek` is the Monday after the current week through that Sunday.
	"""
	if bucket is DateRange.TODAY:
		return DateWindow(_day_start(now), _day_end(now))
	if bucket is DateRange.TOMORROW:
		return DateWindow(_day_start(now, 1), _day_end(now, 1))
	day = _sunday_first_weekday(now)
	if bucket is DateRange.WEEKEND:
		to_sat = (6 - day + 7) % 7
		to_sun = (7 - day + 7) % 7
		return DateWindow(_day_start(now, to_sat), _day_end(now, to_sun))
	if bucket is DateRange.NEXTWEEK:
		to_mon = (8 - day) % 7 or 7
		return DateWindow(_day_start(now, to_mon), _day_end(now, to_mon + 6))
	raise ValueError(f"unknown date bucket: {bucket!r}")
