"""Slot configuration record and the request and response shapes of the configuration service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

_ZERO_TIME = "0001-01-01T00:00:00Z"


def _rfc3339(moment: Optional[datetime]) -> str:
    if moment is None:
        return _ZERO_TIME
    text = moment.isoformat()
    if moment.tzinfo is not None and moment.utcoffset() == timezone.utc.utcoffset(None):
        text = text[: -len("+00:00")] + "Z"
    return text


@dataclass
class SlotsConfig:
    """How slots are cut and booked for a company, address and service."""

    company_id: int = 0
    address_id: Optional[int] = None
    service_id: Optional[int] = None
    slot_duration_minutes: int = 0
    max_concurrent_bookings: int = 0
    advance_booking_days: int = 0
    min_booking_notice_minutes: int = 0
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_service_at_address(self) -> bool:
        """True when the config is for one service at one address."""
        return self.address_id is not None and self.service_id is not None

    def is_address_specific(self) -> bool:
        """True when the config is for one address and every service."""
        return self.address_id is not None and self.service_id is None

    def is_service_specific(self) -> bool:
        """True when the config is for one service at every address."""
        return self.service_id is not None and self.address_id is None


@dataclass
class CreateConfigRequest:
    """Request to create a slot configuration."""

    user_id: int
    company_id: int
    address_id: Optional[int] = None
    service_id: Optional[int] = None
    slot_duration_minutes: int = 0
    max_concurrent_bookings: int = 0
    advance_booking_days: int = 0
    min_booking_notice_minutes: int = 0

    def to_domain_config(self) -> SlotsConfig:
        """New, unsaved configuration holding the requested values."""
        return SlotsConfig(
            company_id=self.company_id,
            address_id=self.address_id,
            service_id=self.service_id,
            slot_duration_minutes=self.slot_duration_minutes,
            max_concurrent_bookings=self.max_concurrent_bookings,
            advance_booking_days=self.advance_booking_days,
            min_booking_notice_minutes=self.min_booking_notice_minutes,
        )


@dataclass
class UpdateConfigRequest:
    """Partial update of a slot configuration; None fields stay as they are."""

    user_id: int
    slot_duration_minutes: Optional[int] = None
    max_concurrent_bookings: Optional[int] = None
    advance_booking_days: Optional[int] = None
    min_booking_notice_minutes: Optional[int] = None

    def apply_to_config(self, config: SlotsConfig) -> None:
        """Write the given fields into ``config`` in place."""
        updates = {
            "slot_duration_minutes": self.slot_duration_minutes,
            "max_concurrent_bookings": self.max_concurrent_bookings,
            "advance_booking_days": self.advance_booking_days,
            "min_booking_notice_minutes": self.min_booking_notice_minutes,
        }
        for name, value in updates.items():
            if value is not None:
                setattr(config, name, value)


@dataclass
class GetConfigRequest:
    """Lookup of the configuration that applies, most specific first."""

    company_id: int
    address_id: Optional[int] = None
    service_id: Optional[int] = None


@dataclass
class DeleteConfigRequest:
    """Request to delete the configuration with the given key."""

    user_id: int
    company_id: int
    address_id: Optional[int] = None
    service_id: Optional[int] = None


@dataclass
class ConfigResponse:
    """A slot configuration as returned to clients."""

    id: int
    company_id: int
    address_id: Optional[int]
    service_id: Optional[int]
    slot_duration_minutes: int
    max_concurrent_bookings: int
    advance_booking_days: int
    min_booking_notice_minutes: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping with camelCase keys; unset address and service are left out."""
        result: dict[str, Any] = {"id": self.id, "companyId": self.company_id}
        if self.address_id is not None:
            result["addressId"] = self.address_id
        if self.service_id is not None:
            result["serviceId"] = self.service_id
        result.update(
            {
                "slotDurationMinutes": self.slot_duration_minutes,
                "maxConcurrentBookings": self.max_concurrent_bookings,
                "advanceBookingDays": self.advance_booking_days,
                "minBookingNoticeMinutes": self.min_booking_notice_minutes,
                "createdAt": _rfc3339(self.created_at),
                "updatedAt": _rfc3339(self.updated_at),
            }
        )
        return result


@dataclass
class ConfigListResponse:
    """A list of slot configurations as returned to clients."""

    configs: list[ConfigResponse] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping holding every configuration."""
        return {"configs": [config.to_dict() for config in self.configs]}


def from_domain_config(config: Optional[SlotsConfig]) -> Optional[ConfigResponse]:
    """Response for a stored configuration; None for None."""
    if config is None:
        return None
    return ConfigResponse(
        id=config.id,
        company_id=config.company_id,
        address_id=config.address_id,
        service_id=config.service_id,
        slot_duration_minutes=config.slot_duration_minutes,
        max_concurrent_bookings=config.max_concurrent_bookings,
        advance_booking_days=config.advance_booking_days,
        min_booking_notice_minutes=config.min_booking_notice_minutes,
        created_at=config.created_at,
        updated_at=config.updated_at,
    )


def from_domain_config_list(configs: Optional[Iterable[SlotsConfig]]) -> ConfigListResponse:
    """Response listing the given configurations in order; None entries are skipped."""
    if configs is None:
        return ConfigListResponse()
    responses = (from_domain_config(config) for config in configs)
    return ConfigListResponse([response for response in responses if response is not None])