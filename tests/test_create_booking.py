import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

import pytest

from slotbooking.config_models import SlotsConfig
from slotbooking.create_booking import (
    AddressNotFoundError,
    CarNotFoundError,
    CompanyClosedError,
    CompanyNotFoundError,
    CreateBooking,
    DateTooFarInFutureError,
    InternalUseCaseError,
    InvalidDateError,
    InvalidInputError,
    ServiceNotAvailableAtAddressError,
    ServiceNotFoundError,
    SlotNotAvailableError,
    TooLateToBookError,
    count_overlapping_bookings,
    validate_booking_time,
    validate_date,
    validate_request,
)
from slotbooking.ports import (
    ConfigNotFoundInStore,
    SelectedCarNotFound,
    SellerCompanyNotFound,
    SellerServiceNotFound,
)
from slotbooking.timestring import TimeString, TimeStringError
from slotbooking.usecase_models import CreateBookingRequest

NOW = datetime(2025, 10, 15, 10, 0)
TOMORROW = date(2025, 10, 16)


@dataclass
class Day:
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None


@dataclass
class Week:
    monday: Day
    tuesday: Day
    wednesday: Day
    thursday: Day
    friday: Day
    saturday: Day
    sunday: Day


def week(day: Day) -> Week:
    return Week(day, day, day, day, day, day, day)


@dataclass
class Address:
    id: int


@dataclass
class Company:
    addresses: list
    working_hours: Week
    manager_ids: list = field(default_factory=list)


@dataclass
class Service:
    name: str
    price: Optional[float]
    address_ids: list


@dataclass
class Car:
    id: int
    brand: str
    model: str
    license_plate: str


@dataclass
class Existing:
    start_time: str
    duration_minutes: int
    active: bool = True

    def is_active(self) -> bool:
        return self.active


class FakeSeller:
    def __init__(self, company=None, service=None, company_error=None, service_error=None):
        self.company = company
        self.service = service
        self.company_error = company_error
        self.service_error = service_error

    def get_company(self, company_id):
        if self.company_error is not None:
            raise self.company_error
        return self.company

    def get_service(self, company_id, service_id):
        if self.service_error is not None:
            raise self.service_error
        return self.service


class FakeUsers:
    def __init__(self, car=None, error=None):
        self.car = car
        self.error = error

    def get_selected_car(self, tg_user_id):
        if self.error is not None:
            raise self.error
        return self.car


class FakeBookings:
    def __init__(self, existing=None, list_error=None):
        self.existing = existing or []
        self.list_error = list_error
        self.filters: list = []
        self.created: list = []

    def get_by_company_with_filter(self, booking_filter):
        self.filters.append(booking_filter)
        if self.list_error is not None:
            raise self.list_error
        return self.existing

    def create(self, booking):
        self.created.append(booking)
        return dataclasses.replace(booking, id=42)


class FakeConfigs:
    def __init__(self, config=None, error=None):
        self.config = config
        self.error = error

    def get_config_with_hierarchy(self, company_id, address_id, service_id):
        if self.error is not None:
            raise self.error
        return self.config


class FakeTx:
    def __init__(self):
        self.calls = 0

    def do_serializable(self, fn):
        self.calls += 1
        return fn()


class FakeLog:
    def __init__(self):
        self.lines: list = []

    def info(self, message, *args):
        self.lines.append(("info", message % args if args else message))

    def warn(self, message, *args):
        self.lines.append(("warn", message % args if args else message))

    def error(self, message, *args):
        self.lines.append(("error", message % args if args else message))


class FixedClock:
    def __init__(self, moment):
        self.moment = moment

    def now(self):
        return self.moment


DEFAULT_CONFIG = SlotsConfig(
    slot_duration_minutes=30,
    max_concurrent_bookings=2,
    advance_booking_days=30,
    min_booking_notice_minutes=60,
)


def make_request(**overrides: Any) -> CreateBookingRequest:
    values = dict(
        user_id=7,
        company_id=1,
        address_id=10,
        service_id=5,
        date=TOMORROW,
        start_time=TimeString("11:00"),
        notes="leave keys at desk",
    )
    values.update(overrides)
    return CreateBookingRequest(**values)


def build(
    *,
    company=None,
    service=None,
    seller=None,
    users=None,
    bookings=None,
    configs=None,
    tx=None,
):
    company = company or Company([Address(10)], week(Day(True, "09:00", "18:00")))
    service = service or Service("Wash", None, [10])
    seller = seller or FakeSeller(company=company, service=service)
    users = users or FakeUsers(car=Car(3, "Lada", "Vesta", "X000XX00"))
    bookings = bookings or FakeBookings()
    configs = configs or FakeConfigs()
    tx = tx or FakeTx()
    use_case = CreateBooking(
        bookings, configs, seller, users, tx, FakeLog(), DEFAULT_CONFIG, FixedClock(NOW)
    )
    return use_case, bookings, tx


@pytest.mark.parametrize("name", ["user_id", "company_id", "address_id", "service_id"])
def test_validate_request_rejects_non_positive_ids(name):
    with pytest.raises(InvalidInputError):
        validate_request(make_request(**{name: 0}))


def test_validate_request_requires_date():
    with pytest.raises(InvalidInputError, match="date is required"):
        validate_request(make_request(date=None))


def test_validate_request_requires_start_time():
    with pytest.raises(InvalidInputError, match="startTime is required"):
        validate_request(make_request(start_time=TimeString("")))


def test_validate_request_rejects_bad_start_time():
    with pytest.raises(InvalidInputError, match="invalid startTime format"):
        validate_request(make_request(start_time=TimeString("25:00")))


def test_validate_request_accepts_good_request():
    request = make_request()
    assert validate_request(request) is None
    assert request.start_time == "11:00"


def test_validate_date_past():
    with pytest.raises(InvalidDateError):
        validate_date(date(2025, 10, 14), NOW, 30)


def test_validate_date_no_limit_when_zero():
    assert validate_date(date(2030, 1, 1), NOW, 0) is None


def test_validate_date_too_far():
    with pytest.raises(DateTooFarInFutureError, match="can only book 1 days in advance"):
        validate_date(date(2025, 10, 17), NOW, 1)


def test_validate_date_at_limit_is_allowed():
    assert validate_date(TOMORROW, NOW, 1) is None


def test_validate_booking_time_other_day_skips_check():
    assert validate_booking_time(TOMORROW, TimeString("00:00"), NOW, 600) is None


def test_validate_booking_time_too_late():
    with pytest.raises(TooLateToBookError, match="at least 30 minutes"):
        validate_booking_time(date(2025, 10, 15), TimeString("10:15"), NOW, 30)


def test_validate_booking_time_boundary_allowed():
    assert validate_booking_time(date(2025, 10, 15), TimeString("10:30"), NOW, 30) is None


@pytest.mark.parametrize(
    "booking, expected",
    [
        (Existing("11:20", 20), 1),
        (Existing("11:00", 30), 0),
        (Existing("12:00", 30), 0),
        (Existing("11:30", 30, active=False), 0),
    ],
)
def test_count_overlapping_bookings_examples(booking, expected):
    assert count_overlapping_bookings(TimeString("11:30"), 30, [booking]) == expected


def test_count_overlapping_bookings_invalid_slot_raises():
    with pytest.raises(TimeStringError):
        count_overlapping_bookings(TimeString("bad"), 30, [])


def test_execute_creates_booking_with_default_config():
    use_case, bookings, tx = build()
    request = make_request()
    response = use_case.execute(request)

    assert response.id == 42
    assert response.status == "confirmed"
    assert response.duration_minutes == DEFAULT_CONFIG.slot_duration_minutes
    assert response.start_time == "11:00"
    assert response.booking_date == TOMORROW
    assert response.service_name == "Wash"
    assert response.service_price == 0.0
    assert (response.car_id, response.car_brand, response.car_license_plate) == (3, "Lada", "X000XX00")
    assert response.notes == request.notes
    assert tx.calls == 1

    (booking_filter,) = bookings.filters
    assert booking_filter.address_id == request.address_id
    assert booking_filter.start_date == TOMORROW and booking_filter.end_date == TOMORROW
    assert booking_filter.include_inactive is False


def test_execute_uses_found_config_and_price():
    config = SlotsConfig(
        id=9,
        slot_duration_minutes=45,
        max_concurrent_bookings=1,
        advance_booking_days=0,
        min_booking_notice_minutes=0,
    )
    use_case, bookings, _ = build(
        configs=FakeConfigs(config=config), service=Service("Polish", 12.5, [10])
    )
    response = use_case.execute(make_request())
    assert response.duration_minutes == 45
    assert response.service_price == 12.5
    assert bookings.created[0].duration_minutes == 45


def test_execute_config_not_found_falls_back_to_default():
    use_case, _, _ = build(configs=FakeConfigs(error=ConfigNotFoundInStore()))
    response = use_case.execute(make_request())
    assert response.duration_minutes == DEFAULT_CONFIG.slot_duration_minutes


def test_execute_config_error_is_internal():
    use_case, bookings, _ = build(configs=FakeConfigs(error=RuntimeError("db down")))
    with pytest.raises(InternalUseCaseError, match="failed to get config"):
        use_case.execute(make_request())
    assert bookings.created == []


def test_execute_invalid_request():
    use_case, _, tx = build()
    with pytest.raises(InvalidInputError):
        use_case.execute(make_request(user_id=-1))
    assert tx.calls == 0


def test_execute_company_not_found():
    use_case, _, _ = build(seller=FakeSeller(company_error=SellerCompanyNotFound()))
    with pytest.raises(CompanyNotFoundError):
        use_case.execute(make_request())


def test_execute_company_backend_error():
    use_case, _, _ = build(seller=FakeSeller(company_error=RuntimeError("timeout")))
    with pytest.raises(InternalUseCaseError, match="failed to get company"):
        use_case.execute(make_request())


def test_execute_address_not_found():
    use_case, _, _ = build()
    with pytest.raises(AddressNotFoundError):
        use_case.execute(make_request(address_id=99))


def test_execute_service_not_found():
    company = Company([Address(10)], week(Day(True, "09:00", "18:00")))
    seller = FakeSeller(company=company, service_error=SellerServiceNotFound())
    use_case, _, _ = build(seller=seller)
    with pytest.raises(ServiceNotFoundError):
        use_case.execute(make_request())


def test_execute_service_not_at_address():
    use_case, _, _ = build(service=Service("Wash", None, [11]))
    with pytest.raises(ServiceNotAvailableAtAddressError):
        use_case.execute(make_request())


def test_execute_car_not_found():
    use_case, _, tx = build(users=FakeUsers(error=SelectedCarNotFound()))
    with pytest.raises(CarNotFoundError):
        use_case.execute(make_request())
    assert tx.calls == 0


def test_execute_past_date():
    use_case, _, _ = build()
    with pytest.raises(InvalidDateError):
        use_case.execute(make_request(date=date(2025, 10, 1)))


def test_execute_company_closed():
    closed = Company([Address(10)], week(Day(False)))
    use_case, bookings, _ = build(company=closed)
    with pytest.raises(CompanyClosedError):
        use_case.execute(make_request())
    assert bookings.created == []


def test_execute_too_late_today():
    use_case, _, _ = build()
    with pytest.raises(TooLateToBookError):
        use_case.execute(make_request(date=date(2025, 10, 15), start_time=TimeString("10:30")))


def test_execute_slot_full():
    existing = [Existing("11:00", 30), Existing("11:15", 30)]
    use_case, bookings, _ = build(bookings=FakeBookings(existing=existing))
    with pytest.raises(SlotNotAvailableError):
        use_case.execute(make_request())
    assert bookings.created == []


def test_execute_slot_with_free_place():
    existing = [Existing("11:00", 30), Existing("11:15", 30, active=False)]
    use_case, bookings, _ = build(bookings=FakeBookings(existing=existing))
    response = use_case.execute(make_request())
    assert response.id == 42
    assert len(bookings.created) == 1


def test_execute_bookings_error_is_internal():
    use_case, _, _ = build(bookings=FakeBookings(list_error=RuntimeError("lock")))
    with pytest.raises(InternalUseCaseError, match="failed to get bookings"):
        use_case.execute(make_request())