"""Inputs and outputs of the slot lookup and booking creation use cases."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from slotbooking.booking_models import BookingStatus
from slotbooking.timestring import TimeString


@dataclass
class SlotsRequest:
    """Which day's slots to list for a company address and service."""

    user_id: int
    company_id: int
    address_id: int
    service_id: int
    date: Optional[date]


@dataclass
class Slot:
    """One bookable time slot and how many places remain in it."""

    start_time: TimeString
    duration_minutes: int
    available_spots: int
    total_spots: int


@dataclass
class SlotsResponse:
    """The slots of one day."""

    date: date
    company_id: int
    address_id: int
    service_id: int
    slots: list[Slot] = field(default_factory=list)


@dataclass
class CreateBookingRequest:
    """Request to book a slot."""

    user_id: int
    company_id: int
    address_id: int
    service_id: int
    date: Optional[date]
    start_time: TimeString
    notes: Optional[str] = None


@dataclass
class NewBooking:
    """A booking record, with service and car details copied in."""

    user_id: int
    company_id: int
    address_id: int
    service_id: int
    car_id: int
    booking_date: date
    start_time: TimeString
    duration_minutes: int
    status: BookingStatus
    service_name: str = ""
    service_price: float = 0.0
    car_brand: Optional[str] = None
    car_model: Optional[str] = None
    car_license_plate: Optional[str] = None
    notes: Optional[str] = None
    id: int = 0
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CreateBookingResponse:
    """The booking that was created."""

    id: int
    user_id: int
    company_id: int
    address_id: int
    service_id: int
    car_id: int
    booking_date: date
    start_time: TimeString
    duration_minutes: int
    status: str
    service_name: str
    service_price: float
    car_brand: Optional[str] = None
    car_model: Optional[str] = None
    car_license_plate: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None