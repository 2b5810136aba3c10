"""Cutting a working day into bookable slots and counting the places left in each."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Iterator, Optional, Sequence, Union

from slotbooking.timestring import (
    TimeString,
    TimeStringError,
    new_time_string,
    new_time_string_from_string,
)
from slotbooking.usecase_models import Slot

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DateLike = Union[date, datetime]


def _day(value: DateLike) -> date:
    return date(value.year, value.month, value.day)


def is_same_day(date1: DateLike, date2: DateLike) -> bool:
    """True when both values fall on the same calendar day."""
    return _day(date1) == _day(date2)


def is_date_in_past(date: DateLike, now: DateLike) -> bool:
    """True when ``date`` is a calendar day before the day of ``now``."""
    return _day(date) < _day(now)


def _slot_starts(open_time: TimeString, close_time: TimeString, duration: int) -> Iterator[TimeString]:
    current = open_time
    while current.is_before(close_time):
        end = current.add_minutes(duration)
        # A slot that runs past midnight or past closing time is not offered.
        if not end.is_after(current) or end.is_after(close_time):
            return
        yield current
        current = end


def generate_time_slots(
    working_hours: Any,
    slot_duration: int,
    request_date: DateLike,
    now: datetime,
    min_booking_notice_minutes: int,
) -> list[TimeString]:
    """Start times of the day's slots, from opening time in steps of ``slot_duration``.

    Slots that would end after closing time are left out; on the current day,
    slots starting before now plus the minimum notice are left out as well.
    Raises InvalidTimeFormatError for malformed opening or closing times.
    """
    if is_date_in_past(request_date, now):
        return []
    if not working_hours.is_open or working_hours.open_time is None or working_hours.close_time is None:
        return []

    open_time = new_time_string_from_string(working_hours.open_time)
    close_time = new_time_string_from_string(working_hours.close_time)
    all_slots = list(_slot_starts(open_time, close_time, slot_duration))

    if not is_same_day(request_date, now):
        return all_slots

    min_allowed = new_time_string(now).add_minutes(min_booking_notice_minutes)
    return [slot for slot in all_slots if not slot.is_before(min_allowed)]


def count_overlapping_bookings(
    slot_start: str, slot_duration: int, bookings: Optional[Iterable[Any]]
) -> int:
    """Number of active bookings whose interval truly overlaps the slot.

    Intervals that only touch at an end point do not overlap.
    """
    start = TimeString(slot_start)
    try:
        slot_end = start.add_minutes(slot_duration)
    except TimeStringError:
        return 0

    count = 0
    for booking in bookings or ():
        if not booking.is_active():
            continue
        booking_start = TimeString(booking.start_time)
        try:
            booking_end = booking_start.add_minutes(booking.duration_minutes)
        except TimeStringError:
            continue
        if booking_start.is_before(slot_end) and booking_end.is_after(start):
            count += 1
    return count


def calculate_available_spots(
    slots: Sequence[TimeString],
    slot_duration: int,
    bookings: Optional[Iterable[Any]],
    max_concurrent_bookings: int,
) -> list[Slot]:
    """A Slot for each start time with the places still free, never below zero."""
    booked = list(bookings or ())
    return [
        Slot(
            start_time=slot_start,
            duration_minutes=slot_duration,
            available_spots=max(
                0, max_concurrent_bookings - count_overlapping_bookings(slot_start, slot_duration, booked)
            ),
            total_spots=max_concurrent_bookings,
        )
        for slot_start in slots
    ]


def get_working_hours_for_day(company: Any, date: DateLike) -> Any:
    """The company's schedule for the weekday of ``date``."""
    return getattr(company.working_hours, _WEEKDAYS[date.weekday()])