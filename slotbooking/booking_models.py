"""Booking statuses, query filters and the request and response shapes of the booking service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

_ZERO_TIME = "0001-01-01T00:00:00Z"


class BookingStatus(str, Enum):
    """Lifecycle state of a booking."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED_BY_USER = "cancelled_by_user"
    CANCELLED_BY_COMPANY = "cancelled_by_company"
    NO_SHOW = "no_show"

    def __str__(self) -> str:
        return self.value


class InvalidStatusError(ValueError):
    """The text does not name a known booking status."""

    def __init__(self, message: str = "invalid booking status") -> None:
        super().__init__(message)


def to_domain_booking_status(status: str) -> BookingStatus:
    """Status named by ``status``; raises InvalidStatusError for unknown names."""
    try:
        return BookingStatus(str(status) if not isinstance(status, BookingStatus) else status.value)
    except ValueError:
        raise InvalidStatusError() from None


def _rfc3339(moment: Optional[datetime]) -> str:
    if moment is None:
        return _ZERO_TIME
    text = moment.isoformat()
    if moment.tzinfo is not None and moment.utcoffset() == timezone.utc.utcoffset(None):
        text = text[: -len("+00:00")] + "Z"
    return text


def _rfc3339_seconds(moment: datetime) -> str:
    text = moment.isoformat(timespec="seconds")
    if moment.tzinfo is not None and moment.utcoffset() == timezone.utc.utcoffset(None):
        text = text[: -len("+00:00")] + "Z"
    return text


def _status_text(status: Any) -> str:
    return getattr(status, "value", status)


@dataclass
class CompanyBookingsFilter:
    """Which bookings of a company to fetch."""

    company_id: int
    address_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[BookingStatus] = None
    include_inactive: bool = False


@dataclass
class CancelBookingRequest:
    """Request to cancel a booking."""

    user_id: int
    cancellation_reason: str = ""


@dataclass
class UpdateStatusRequest:
    """Request to move a booking to another status."""

    user_id: int
    status: str


@dataclass
class GetUserBookingsRequest:
    """Request for a user's booking history, optionally of one status."""

    user_id: int
    status: Optional[str] = None


@dataclass
class GetCompanyBookingsRequest:
    """Request for a company's bookings with optional filters."""

    user_id: int
    company_id: int
    address_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[str] = None
    include_inactive: bool = False

    def to_domain_filter(self) -> CompanyBookingsFilter:
        """Filter for the repository; raises InvalidStatusError for a bad status."""
        status = to_domain_booking_status(self.status) if self.status is not None else None
        return CompanyBookingsFilter(
            company_id=self.company_id,
            address_id=self.address_id,
            start_date=self.start_date,
            end_date=self.end_date,
            status=status,
            include_inactive=self.include_inactive,
        )


@dataclass
class BookingResponse:
    """A booking as returned to clients."""

    id: int
    user_id: int
    company_id: int
    address_id: int
    service_id: int
    car_id: int
    booking_date: str
    start_time: str
    duration_minutes: int
    status: str
    service_name: str
    service_price: float
    car_brand: Optional[str] = None
    car_model: Optional[str] = None
    car_license_plate: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping with camelCase keys; unset optional fields are left out."""
        result: dict[str, Any] = {
            "id": self.id,
            "userId": self.user_id,
            "companyId": self.company_id,
            "addressId": self.address_id,
            "serviceId": self.service_id,
            "carId": self.car_id,
            "bookingDate": self.booking_date,
            "startTime": self.start_time,
            "durationMinutes": self.duration_minutes,
            "status": self.status,
            "serviceName": self.service_name,
            "servicePrice": self.service_price,
        }
        optional = {
            "carBrand": self.car_brand,
            "carModel": self.car_model,
            "carLicensePlate": self.car_license_plate,
            "notes": self.notes,
            "cancellationReason": self.cancellation_reason,
            "cancelledAt": self.cancelled_at,
        }
        result.update((key, value) for key, value in optional.items() if value is not None)
        result["createdAt"] = _rfc3339(self.created_at)
        result["updatedAt"] = _rfc3339(self.updated_at)
        return result


@dataclass
class BookingListResponse:
    """A list of bookings as returned to clients."""

    bookings: list[BookingResponse] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping holding every booking."""
        return {"bookings": [booking.to_dict() for booking in self.bookings]}


def from_domain_booking(booking: Any) -> Optional[BookingResponse]:
    """Response for a stored booking; None for None."""
    if booking is None:
        return None
    cancelled_at = booking.cancelled_at
    return BookingResponse(
        id=booking.id,
        user_id=booking.user_id,
        company_id=booking.company_id,
        address_id=booking.address_id,
        service_id=booking.service_id,
        car_id=booking.car_id,
        booking_date=booking.booking_date.strftime("%Y-%m-%d"),
        start_time=str(booking.start_time),
        duration_minutes=booking.duration_minutes,
        status=_status_text(booking.status),
        service_name=booking.service_name,
        service_price=booking.service_price,
        car_brand=booking.car_brand,
        car_model=booking.car_model,
        car_license_plate=booking.car_license_plate,
        notes=booking.notes,
        cancellation_reason=booking.cancellation_reason,
        cancelled_at=_rfc3339_seconds(cancelled_at) if cancelled_at is not None else None,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


def from_domain_booking_list(bookings: Optional[Iterable[Any]]) -> BookingListResponse:
    """Response listing the given bookings in order; None entries are skipped."""
    if bookings is None:
        return BookingListResponse()
    responses = (from_domain_booking(booking) for booking in bookings)
    return BookingListResponse([response for response in responses if response is not None])