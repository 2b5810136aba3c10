"""Time of day in ``HH:MM`` form, as stored in TIME columns and sent as JSON."""

from __future__ import annotations

import json
import re
from datetime import date, datetime, time
from typing import Union

TIME_FORMAT = "%H:%M"

_MINUTES_PER_DAY = 24 * 60
_PATTERN = re.compile(r"([0-9]{1,2}):([0-9]{2})")


class TimeStringError(ValueError):
    """Base class for time-of-day errors."""


class InvalidTimeFormatError(TimeStringError):
    """The text is not a valid ``HH:MM`` time."""

    def __init__(self, detail: str = "") -> None:
        message = "invalid time format, expected HH:MM"
        super().__init__(f"{message}: {detail}" if detail else message)


class InvalidTimeValueError(TimeStringError):
    """The time is not set."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or "invalid time value")


def _minute_of_day(text: str) -> int:
    match = _PATTERN.fullmatch(text)
    if match is None:
        raise InvalidTimeFormatError(f"cannot parse {text!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23:
        raise InvalidTimeFormatError(f"hour out of range in {text!r}")
    if minute > 59:
        raise InvalidTimeFormatError(f"minute out of range in {text!r}")
    return hour * 60 + minute


class TimeString(str):
    """A time of day such as ``"09:30"``; the empty string means unset."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"TimeString({str(self)!r})"

    def is_zero(self) -> bool:
        """Return True when no time is set."""
        return str(self) == ""

    def validate(self) -> None:
        """Raise InvalidTimeFormatError unless the time is unset or valid."""
        if not self.is_zero():
            _minute_of_day(self)

    def _both_minutes(self, other: str) -> tuple[int, int] | None:
        if self.is_zero() or str(other) == "":
            return None
        try:
            return _minute_of_day(self), _minute_of_day(str(other))
        except InvalidTimeFormatError:
            return None

    def is_before(self, other: str) -> bool:
        """True if this time is strictly earlier; False if either is unset or invalid."""
        pair = self._both_minutes(other)
        return pair is not None and pair[0] < pair[1]

    def is_after(self, other: str) -> bool:
        """True if this time is strictly later; False if either is unset or invalid."""
        pair = self._both_minutes(other)
        return pair is not None and pair[0] > pair[1]

    def add_minutes(self, minutes: int) -> "TimeString":
        """Return the time shifted by ``minutes``, wrapping around midnight."""
        if self.is_zero():
            raise InvalidTimeValueError()
        total = (_minute_of_day(self) + minutes) % _MINUTES_PER_DAY
        hour, minute = divmod(total, 60)
        return TimeString(f"{hour:02d}:{minute:02d}")

    def minutes_between(self, other: str) -> int:
        """Minutes from this time to ``other``; positive when ``other`` is later."""
        if self.is_zero() or str(other) == "":
            raise InvalidTimeValueError()
        return _minute_of_day(str(other)) - _minute_of_day(self)

    def parse(self, date: Union[date, datetime]) -> datetime:
        """Combine the time with the calendar day of ``date``."""
        if self.is_zero():
            raise InvalidTimeValueError()
        hour, minute = divmod(_minute_of_day(self), 60)
        return datetime(date.year, date.month, date.day, hour, minute)

    def to_time(self) -> datetime:
        """Combine the time with today's date."""
        return self.parse(datetime.now())

    def to_db(self) -> str | None:
        """Value to store in a database column; None when unset."""
        return None if self.is_zero() else str(self)

    @classmethod
    def from_db(cls, value: object) -> "TimeString":
        """Build from a database value: None, time, datetime, bytes or str."""
        if value is None:
            return cls("")
        if isinstance(value, (datetime, time)):
            return cls(value.strftime(TIME_FORMAT))
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value).decode("utf-8"))
        if isinstance(value, str):
            return cls(value)
        raise TypeError(f"cannot scan type {type(value).__name__} into TimeString")

    def to_json(self) -> str:
        """JSON text: the quoted time, or ``null`` when unset."""
        return json.dumps(None if self.is_zero() else str(self))

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "TimeString":
        """Build from JSON text holding a string or ``null``."""
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        value = json.loads(data)
        if value is None:
            return cls("")
        if not isinstance(value, str):
            raise ValueError(f"cannot unmarshal {type(value).__name__} into TimeString")
        return cls(value)


def new_time_string(moment: Union[datetime, time]) -> TimeString:
    """Time of day of ``moment``."""
    return TimeString(moment.strftime(TIME_FORMAT))


def new_time_string_from_string(text: str) -> TimeString:
    """Validated time from text; raises InvalidTimeFormatError."""
    result = TimeString(text)
    result.validate()
    return result


def must_new_time_string(text: str) -> TimeString:
    """Validated time from a literal known to be correct."""
    try:
        return new_time_string_from_string(text)
    except InvalidTimeFormatError as err:
        raise InvalidTimeFormatError(f"invalid time string: {text}") from err