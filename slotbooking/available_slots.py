"""Listing the bookable slots of a day for a company address and service."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from slotbooking.booking_models import CompanyBookingsFilter
from slotbooking.config_models import SlotsConfig
from slotbooking.ports import (
    BookingRepository,
    ConfigNotFoundInStore,
    ConfigRepository,
    LogSink,
    SellerCompanyNotFound,
    SellerServiceClient,
    SellerServiceNotFound,
    SystemClock,
    TimeProvider,
)
from slotbooking.slots import (
    calculate_available_spots,
    generate_time_slots,
    get_working_hours_for_day,
    is_date_in_past,
)
from slotbooking.timestring import TimeStringError
from slotbooking.usecase_models import SlotsRequest, SlotsResponse

_DATE_FORMAT = "%Y-%m-%d"


class AvailableSlotsError(Exception):
    """Base class for slot lookup errors."""

    base_message = "available slots error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.base_message}: {detail}" if detail else self.base_message)


class CompanyNotFoundError(AvailableSlotsError):
    """The company does not exist."""

    base_message = "company not found"


class AddressNotFoundError(AvailableSlotsError):
    """The address does not belong to the company."""

    base_message = "address not found"


class ServiceNotFoundError(AvailableSlotsError):
    """The service does not exist."""

    base_message = "service not found"


class ServiceNotAvailableAtAddressError(AvailableSlotsError):
    """The service is not offered at the address."""

    base_message = "service is not available at this address"


class InvalidDateError(AvailableSlotsError):
    """The date is in the past."""

    base_message = "invalid booking date"


class DateTooFarInFutureError(AvailableSlotsError):
    """The date is beyond the advance booking limit."""

    base_message = "date is too far in the future"


class CompanyClosedError(AvailableSlotsError):
    """The company is closed on the date."""

    base_message = "company is closed on this date"


class InvalidInputError(AvailableSlotsError):
    """The request holds invalid data."""

    base_message = "invalid input data"


class InternalUseCaseError(AvailableSlotsError):
    """A backend failed."""

    base_message = "usecase: internal error"


def validate_request(request: SlotsRequest) -> None:
    """Raise InvalidInputError for non-positive ids or a missing date."""
    for name, value in (
        ("companyID", request.company_id),
        ("addressID", request.address_id),
        ("serviceID", request.service_id),
    ):
        if value <= 0:
            raise InvalidInputError(f"{name} must be positive")
    if request.date is None:
        raise InvalidInputError("date is required")


def validate_date(
    request_date: Union[date, datetime], now: Union[date, datetime], advance_booking_days: int
) -> None:
    """Raise if the date is past, or beyond ``advance_booking_days`` (0 means no limit)."""
    if is_date_in_past(request_date, now):
        raise InvalidDateError()
    if advance_booking_days == 0:
        return
    max_date = date(now.year, now.month, now.day) + timedelta(days=advance_booking_days)
    if date(request_date.year, request_date.month, request_date.day) > max_date:
        raise DateTooFarInFutureError(f"can only book {advance_booking_days} days in advance")


def validate_address_exists(company: Any, address_id: int) -> None:
    """Raise AddressNotFoundError unless the company has the address."""
    if not any(address.id == address_id for address in company.addresses):
        raise AddressNotFoundError()


def validate_service_at_address(service: Any, address_id: int) -> None:
    """Raise ServiceNotAvailableAtAddressError unless the service is offered there."""
    if address_id not in service.address_ids:
        raise ServiceNotAvailableAtAddressError()


class GetAvailableSlots:
    """Works out which slots of a day can still be booked and how many places each has."""

    def __init__(
        self,
        booking_repo: BookingRepository,
        config_repo: ConfigRepository,
        seller_client: SellerServiceClient,
        logger: LogSink,
        default_config: SlotsConfig,
        time_provider: Optional[TimeProvider] = None,
    ) -> None:
        self._bookings = booking_repo
        self._configs = config_repo
        self._seller = seller_client
        self._log = logger
        self._default_config = default_config
        self._clock = time_provider if time_provider is not None else SystemClock()

    def _empty(self, request: SlotsRequest) -> SlotsResponse:
        return SlotsResponse(
            date=request.date,
            company_id=request.company_id,
            address_id=request.address_id,
            service_id=request.service_id,
            slots=[],
        )

    def _company(self, request: SlotsRequest) -> Any:
        try:
            return self._seller.get_company(request.company_id)
        except SellerCompanyNotFound:
            self._log.warn("GetAvailableSlots: company id=%s not found", request.company_id)
            raise CompanyNotFoundError() from None
        except Exception as err:
            self._log.error(
                "GetAvailableSlots: failed to get company id=%s: %s", request.company_id, err
            )
            raise InternalUseCaseError(f"failed to get company: {err}") from err

    def _service(self, request: SlotsRequest) -> Any:
        try:
            return self._seller.get_service(request.company_id, request.service_id)
        except SellerServiceNotFound:
            self._log.warn("GetAvailableSlots: service id=%s not found", request.service_id)
            raise ServiceNotFoundError() from None
        except Exception as err:
            self._log.error(
                "GetAvailableSlots: failed to get service id=%s: %s", request.service_id, err
            )
            raise InternalUseCaseError(f"failed to get service: {err}") from err

    def _config(self, request: SlotsRequest) -> SlotsConfig:
        try:
            config = self._configs.get_config_with_hierarchy(
                request.company_id, request.address_id, request.service_id
            )
        except ConfigNotFoundInStore:
            config = None
        except Exception as err:
            self._log.error("GetAvailableSlots: failed to get config: %s", err)
            raise InternalUseCaseError(f"failed to get config: {err}") from err

        if config is None:
            self._log.info(
                "GetAvailableSlots: using default config for company=%s, address=%s, service=%s",
                request.company_id,
                request.address_id,
                request.service_id,
            )
            return self._default_config
        self._log.info("GetAvailableSlots: using config id=%s", config.id)
        return config

    def execute(self, request: SlotsRequest) -> SlotsResponse:
        """The day's slots with free places; raises AvailableSlotsError subclasses."""
        self._log.info(
            "GetAvailableSlots: user=%s, company=%s, address=%s, service=%s, date=%s",
            request.user_id,
            request.company_id,
            request.address_id,
            request.service_id,
            request.date.strftime(_DATE_FORMAT) if request.date is not None else "",
        )
        try:
            validate_request(request)
        except InvalidInputError as err:
            self._log.warn("GetAvailableSlots: validation failed: %s", err)
            raise

        now = self._clock.now()

        company = self._company(request)
        try:
            validate_address_exists(company, request.address_id)
        except AddressNotFoundError:
            self._log.warn(
                "GetAvailableSlots: address id=%s not found in company id=%s",
                request.address_id,
                request.company_id,
            )
            raise

        service = self._service(request)
        try:
            validate_service_at_address(service, request.address_id)
        except ServiceNotAvailableAtAddressError:
            self._log.warn(
                "GetAvailableSlots: service id=%s not available at address id=%s",
                request.service_id,
                request.address_id,
            )
            raise

        config = self._config(request)

        try:
            validate_date(request.date, now, config.advance_booking_days)
        except AvailableSlotsError as err:
            self._log.warn("GetAvailableSlots: date validation failed: %s", err)
            raise

        working_hours = get_working_hours_for_day(company, request.date)
        if not working_hours.is_open:
            self._log.info(
                "GetAvailableSlots: company is closed on %s", request.date.strftime(_DATE_FORMAT)
            )
            return self._empty(request)

        try:
            time_slots = generate_time_slots(
                working_hours,
                config.slot_duration_minutes,
                request.date,
                now,
                config.min_booking_notice_minutes,
            )
        except TimeStringError as err:
            self._log.error("GetAvailableSlots: failed to generate time slots: %s", err)
            raise InternalUseCaseError(f"failed to generate time slots: {err}") from err

        booking_filter = CompanyBookingsFilter(
            company_id=request.company_id,
            address_id=request.address_id,
            start_date=request.date,
            end_date=request.date,
            include_inactive=False,
        )
        try:
            bookings = self._bookings.get_by_company_with_filter(booking_filter)
        except Exception as err:
            self._log.error("GetAvailableSlots: failed to get bookings: %s", err)
            raise InternalUseCaseError(f"failed to get bookings: {err}") from err

        slots = calculate_available_spots(
            time_slots,
            config.slot_duration_minutes,
            bookings,
            config.max_concurrent_bookings,
        )

        self._log.info(
            "GetAvailableSlots: generated %s slots for company=%s, address=%s, service=%s, date=%s",
            len(slots),
            request.company_id,
            request.address_id,
            request.service_id,
            request.date.strftime(_DATE_FORMAT),
        )
        response = self._empty(request)
        response.slots = slots
        return response