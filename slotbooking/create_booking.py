"""Booking a slot for a user's selected car, checked against the slot configuration."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional, Union

from slotbooking.booking_models import BookingStatus, CompanyBookingsFilter
from slotbooking.config_models import SlotsConfig
from slotbooking.ports import (
    BookingRepository,
    ConfigNotFoundInStore,
    ConfigRepository,
    LogSink,
    SelectedCarNotFound,
    SellerCompanyNotFound,
    SellerServiceClient,
    SellerServiceNotFound,
    SystemClock,
    TimeProvider,
    TransactionManager,
    UserServiceClient,
)
from slotbooking.slots import get_working_hours_for_day, is_date_in_past, is_same_day
from slotbooking.timestring import TimeString, TimeStringError, new_time_string
from slotbooking.usecase_models import CreateBookingRequest, CreateBookingResponse, NewBooking

_DATE_FORMAT = "%Y-%m-%d"

DateLike = Union[date, datetime]


class CreateBookingError(Exception):
    """Base class for booking creation errors."""

    base_message = "create_booking: error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.base_message}: {detail}" if detail else self.base_message)


class CompanyNotFoundError(CreateBookingError):
    """The company does not exist."""

    base_message = "create_booking: company not found"


class AddressNotFoundError(CreateBookingError):
    """The address does not belong to the company."""

    base_message = "create_booking: address not found"


class ServiceNotFoundError(CreateBookingError):
    """The service does not exist."""

    base_message = "create_booking: service not found"


class ServiceNotAvailableAtAddressError(CreateBookingError):
    """The service is not offered at the address."""

    base_message = "create_booking: service is not available at this address"


class CarNotFoundError(CreateBookingError):
    """The user has no selected car."""

    base_message = "create_booking: user has no selected car"


class InvalidDateError(CreateBookingError):
    """The booking date is in the past."""

    base_message = "create_booking: invalid booking date"


class DateTooFarInFutureError(CreateBookingError):
    """The booking date is beyond the advance booking limit."""

    base_message = "create_booking: date is too far in the future"


class CompanyClosedError(CreateBookingError):
    """The company is closed on the booking date."""

    base_message = "create_booking: company is closed on this date"


class SlotNotAvailableError(CreateBookingError):
    """Every place in the slot is taken."""

    base_message = "create_booking: slot is not available"


class InvalidTimeSlotError(CreateBookingError):
    """The slot time is not valid for the schedule."""

    base_message = "create_booking: invalid time slot"


class TooLateToBookError(CreateBookingError):
    """The slot starts sooner than the minimum booking notice allows."""

    base_message = "create_booking: too late to book this slot"


class InvalidInputError(CreateBookingError):
    """The request holds invalid data."""

    base_message = "create_booking: invalid input data"


class InternalUseCaseError(CreateBookingError):
    """A backend failed."""

    base_message = "create_booking: internal error"


def validate_request(request: CreateBookingRequest) -> None:
    """Raise InvalidInputError for non-positive ids, a missing date or a bad start time."""
    for name, value in (
        ("userID", request.user_id),
        ("companyID", request.company_id),
        ("addressID", request.address_id),
        ("serviceID", request.service_id),
    ):
        if value <= 0:
            raise InvalidInputError(f"{name} must be positive")
    if request.date is None:
        raise InvalidInputError("date is required")
    start_time = TimeString(request.start_time or "")
    if start_time.is_zero():
        raise InvalidInputError("startTime is required")
    try:
        start_time.validate()
    except TimeStringError as err:
        raise InvalidInputError(f"invalid startTime format: {err}") from err


def validate_date(booking_date: DateLike, now: DateLike, advance_booking_days: int) -> None:
    """Raise if the date is past, or beyond ``advance_booking_days`` (0 means no limit)."""
    if is_date_in_past(booking_date, now):
        raise InvalidDateError()
    if advance_booking_days == 0:
        return
    max_date = date(now.year, now.month, now.day) + timedelta(days=advance_booking_days)
    if date(booking_date.year, booking_date.month, booking_date.day) > max_date:
        raise DateTooFarInFutureError(f"can only book {advance_booking_days} days in advance")


def validate_booking_time(
    booking_date: DateLike,
    start_time: str,
    now: datetime,
    min_booking_notice_minutes: int,
) -> None:
    """On the current day, raise TooLateToBookError if the slot starts before now plus the notice."""
    if not is_same_day(booking_date, now):
        return
    try:
        min_allowed = new_time_string(now).add_minutes(min_booking_notice_minutes)
    except TimeStringError as err:
        raise InternalUseCaseError(f"failed to calculate min allowed time: {err}") from err
    if TimeString(start_time).is_before(min_allowed):
        raise TooLateToBookError(
            f"must book at least {min_booking_notice_minutes} minutes in advance"
        )


def count_overlapping_bookings(
    start_time: str, slot_duration: int, bookings: Optional[Iterable[Any]]
) -> int:
    """Number of active bookings truly overlapping the slot; touching intervals do not count.

    Raises TimeStringError when the slot's end cannot be worked out.
    """
    start = TimeString(start_time)
    slot_end = start.add_minutes(slot_duration)

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


def _validate_address_exists(company: Any, address_id: int) -> None:
    if not any(address.id == address_id for address in company.addresses):
        raise AddressNotFoundError()


def _validate_service_at_address(service: Any, address_id: int) -> None:
    if address_id not in service.address_ids:
        raise ServiceNotAvailableAtAddressError()


def _service_price(service: Any) -> float:
    return 0.0 if service.price is None else service.price


class CreateBooking:
    """Creates a booking inside a serializable transaction so slots are not overbooked."""

    def __init__(
        self,
        booking_repo: BookingRepository,
        config_repo: ConfigRepository,
        seller_client: SellerServiceClient,
        user_client: UserServiceClient,
        tx_manager: TransactionManager,
        logger: LogSink,
        default_config: SlotsConfig,
        time_provider: Optional[TimeProvider] = None,
    ) -> None:
        self._bookings = booking_repo
        self._configs = config_repo
        self._seller = seller_client
        self._users = user_client
        self._tx = tx_manager
        self._log = logger
        self._default_config = default_config
        self._clock = time_provider if time_provider is not None else SystemClock()

    def _company(self, request: CreateBookingRequest) -> Any:
        try:
            return self._seller.get_company(request.company_id)
        except SellerCompanyNotFound:
            self._log.warn("CreateBooking: company id=%s not found", request.company_id)
            raise CompanyNotFoundError() from None
        except Exception as err:
            self._log.error("CreateBooking: failed to get company id=%s: %s", request.company_id, err)
            raise InternalUseCaseError(f"failed to get company: {err}") from err

    def _service(self, request: CreateBookingRequest) -> Any:
        try:
            return self._seller.get_service(request.company_id, request.service_id)
        except SellerServiceNotFound:
            self._log.warn("CreateBooking: service id=%s not found", request.service_id)
            raise ServiceNotFoundError() from None
        except Exception as err:
            self._log.error("CreateBooking: failed to get service id=%s: %s", request.service_id, err)
            raise InternalUseCaseError(f"failed to get service: {err}") from err

    def _car(self, request: CreateBookingRequest) -> Any:
        try:
            return self._users.get_selected_car(request.user_id)
        except SelectedCarNotFound:
            self._log.warn("CreateBooking: user id=%s has no selected car", request.user_id)
            raise CarNotFoundError() from None
        except Exception as err:
            self._log.error(
                "CreateBooking: failed to get selected car for user id=%s: %s", request.user_id, err
            )
            raise InternalUseCaseError(f"failed to get selected car: {err}") from err

    def _config(self, request: CreateBookingRequest) -> SlotsConfig:
        try:
            config = self._configs.get_config_with_hierarchy(
                request.company_id, request.address_id, request.service_id
            )
        except ConfigNotFoundInStore:
            config = None
        except Exception as err:
            self._log.error("CreateBooking: failed to get config: %s", err)
            raise InternalUseCaseError(f"failed to get config: {err}") from err

        if config is None:
            self._log.info(
                "CreateBooking: using default config for company=%s, address=%s, service=%s",
                request.company_id,
                request.address_id,
                request.service_id,
            )
            return self._default_config
        self._log.info("CreateBooking: using config id=%s", config.id)
        return config

    def _book(
        self, request: CreateBookingRequest, now: datetime, company: Any, service: Any, car: Any
    ) -> Any:
        config = self._config(request)

        try:
            validate_date(request.date, now, config.advance_booking_days)
        except CreateBookingError as err:
            self._log.warn("CreateBooking: date validation failed: %s", err)
            raise

        working_hours = get_working_hours_for_day(company, request.date)
        if not working_hours.is_open:
            self._log.warn("CreateBooking: company is closed on %s", request.date.strftime(_DATE_FORMAT))
            raise CompanyClosedError()

        try:
            validate_booking_time(
                request.date, request.start_time, now, config.min_booking_notice_minutes
            )
        except CreateBookingError as err:
            self._log.warn("CreateBooking: booking time validation failed: %s", err)
            raise

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
            self._log.error("CreateBooking: failed to get bookings: %s", err)
            raise InternalUseCaseError(f"failed to get bookings: {err}") from err

        try:
            overlapping = count_overlapping_bookings(
                request.start_time, config.slot_duration_minutes, bookings
            )
        except TimeStringError as err:
            self._log.error("CreateBooking: failed to count overlapping bookings: %s", err)
            raise InternalUseCaseError(f"failed to count overlapping bookings: {err}") from err

        if overlapping >= config.max_concurrent_bookings:
            self._log.warn(
                "CreateBooking: slot not available, %s/%s spots taken",
                overlapping,
                config.max_concurrent_bookings,
            )
            raise SlotNotAvailableError()
        self._log.info(
            "CreateBooking: slot available, %s/%s spots taken",
            overlapping,
            config.max_concurrent_bookings,
        )

        booking = NewBooking(
            user_id=request.user_id,
            company_id=request.company_id,
            address_id=request.address_id,
            service_id=request.service_id,
            car_id=car.id,
            booking_date=request.date,
            start_time=TimeString(request.start_time),
            duration_minutes=config.slot_duration_minutes,
            status=BookingStatus.CONFIRMED,
            service_name=service.name,
            service_price=_service_price(service),
            car_brand=car.brand,
            car_model=car.model,
            car_license_plate=car.license_plate,
            notes=request.notes,
        )
        try:
            return self._bookings.create(booking)
        except Exception as err:
            self._log.error("CreateBooking: failed to create booking: %s", err)
            raise InternalUseCaseError(f"failed to create booking: {err}") from err

    def execute(self, request: CreateBookingRequest) -> CreateBookingResponse:
        """Create the booking; raises CreateBookingError subclasses on failure."""
        self._log.info(
            "CreateBooking: user=%s, company=%s, address=%s, service=%s, date=%s, time=%s",
            request.user_id,
            request.company_id,
            request.address_id,
            request.service_id,
            request.date.strftime(_DATE_FORMAT) if request.date is not None else "",
            request.start_time,
        )
        try:
            validate_request(request)
        except InvalidInputError as err:
            self._log.warn("CreateBooking: validation failed: %s", err)
            raise

        now = self._clock.now()

        company = self._company(request)
        try:
            _validate_address_exists(company, request.address_id)
        except AddressNotFoundError:
            self._log.warn(
                "CreateBooking: address id=%s not found in company id=%s",
                request.address_id,
                request.company_id,
            )
            raise

        service = self._service(request)
        try:
            _validate_service_at_address(service, request.address_id)
        except ServiceNotAvailableAtAddressError:
            self._log.warn(
                "CreateBooking: service id=%s not available at address id=%s",
                request.service_id,
                request.address_id,
            )
            raise

        car = self._car(request)

        created: list[Any] = []

        def in_transaction(*_: Any) -> None:
            created.append(self._book(request, now, company, service, car))

        self._tx.do_serializable(in_transaction)
        result = created[0]

        self._log.info("CreateBooking: successfully created booking id=%s", result.id)
        return CreateBookingResponse(
            id=result.id,
            user_id=result.user_id,
            company_id=result.company_id,
            address_id=result.address_id,
            service_id=result.service_id,
            car_id=result.car_id,
            booking_date=result.booking_date,
            start_time=result.start_time,
            duration_minutes=result.duration_minutes,
            status=getattr(result.status, "value", result.status),
            service_name=result.service_name,
            service_price=result.service_price,
            car_brand=result.car_brand,
            car_model=result.car_model,
            car_license_plate=result.car_license_plate,
            notes=result.notes,
            created_at=result.created_at,
            updated_at=result.updated_at,
        )