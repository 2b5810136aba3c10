# slotbooking

Domain logic for a time-slot booking service. It covers slot
configuration per company, the calculation of available slots, and
booking management.

The services and use cases work through objects that you supply. These
objects follow the protocols in `slotbooking.ports`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## What the package does not do

The package has no storage, no network clients, no HTTP server and no
command-line program. You provide these parts yourself:

- the booking and configuration repositories;
- the clients for companies, services and users;
- the transaction manager.

Each of them must follow the protocols in `slotbooking.ports`.

The package does not choose among configuration levels. The repository's
`get_config_with_hierarchy` method returns the configuration that
applies.

The package has no default slot configuration of its own. The use cases
take one as `default_config`.

## Building blocks

### `slotbooking.timestring`

`TimeString` is a time of day in `HH:MM` form. It is a subclass of
`str`, and the empty string means the time is not set.

- `validate()` raises `InvalidTimeFormatError` for text that is not a
  valid time. An unset time passes.
- `is_before` and `is_after` compare two times. They return `False` when
  either time is unset or invalid.
- `add_minutes` shifts the time and wraps around midnight. It raises
  `InvalidTimeValueError` on an unset time.
- `minutes_between` gives the number of minutes from this time to
  another.
- `parse(date)` combines the time with that date.
- `to_time()` combines the time with today's date.
- `to_db()` and `from_db()` convert to and from database values.
- `to_json()` and `from_json()` convert to and from JSON. An unset time
  becomes `null`.

Helpers:

- `new_time_string(moment)` takes the time of day from `moment`.
- `new_time_string_from_string(text)` builds a time from text and
  validates it.
- `must_new_time_string(text)` does the same, for text known to be
  correct.

### `slotbooking.ports`

Protocols:

- `BookingRepository`
- `ConfigRepository`
- `SellerServiceClient`
- `UserServiceClient`
- `TransactionManager`
- `TimeProvider`
- `LogSink`

`TransactionManager.do_serializable(fn)` must call `fn` inside a
serializable transaction.

Your implementations report missing records by raising these exceptions:

- `BookingNotFoundInStore`
- `ConfigNotFoundInStore`
- `SellerCompanyNotFound`
- `SellerServiceNotFound`
- `SelectedCarNotFound`

`SystemClock` is a `TimeProvider` that reads the system clock.

### Shape of the objects your backends return

The code reads these attributes and methods.

Company:

- `manager_ids`
- `addresses`, whose items have an `id`
- `working_hours`, which has `monday` to `sunday`. Each day has
  `is_open`, `open_time` and `close_time` (`"HH:MM"` strings or `None`).

Service:

- `name`
- `price`, which may be `None`
- `address_ids`

Car:

- `id`
- `brand`
- `model`
- `license_plate`

Stored booking:

- every field of `usecase_models.NewBooking`
- an `is_active()` method
- a `can_be_cancelled()` method

### `slotbooking.logger`

`Logger(log_file_path, level="info")` is a logger that keeps a level.

- `debug` and `info` write to stdout.
- `warn` and `error` write to stdout and append to the log file.

`parse_log_level` maps the names `debug`, `info`, `warn`/`warning` and
`error` to levels, ignoring case. Any other name gives `INFO`.

`fatal` logs an error and closes the file. It then raises
`SystemExit(1)`.

The logger is a context manager and closes its file on exit.

### `slotbooking.roles`

`ROLE_SUPERUSER` is the name of the superuser role.

## Slot configuration

`slotbooking.config_models.SlotsConfig` holds the settings for a
company. A configuration can be narrowed to one address, to one service,
or to one service at one address. `ConfigResponse` and
`ConfigListResponse` turn into JSON-ready dictionaries with `to_dict()`.

`slotbooking.config_service.ConfigService` creates, reads, updates and
deletes configurations. Only company managers may list or change them.
Anyone may read a configuration with `get_by_id` or
`get_with_hierarchy`.

```python
from slotbooking.config_service import ConfigService
from slotbooking.config_models import CreateConfigRequest

service = ConfigService(config_repo, seller_client, logger)
created = service.create(CreateConfigRequest(
    user_id=42,
    company_id=1,
    address_id=10,
    service_id=None,
    slot_duration_minutes=30,
    max_concurrent_bookings=2,
    advance_booking_days=14,
    min_booking_notice_minutes=60,
))
print(created.to_dict())
```

Each setting must fall within these limits. Otherwise `InvalidInputError`
is raised.

| Setting | Allowed range |
| --- | --- |
| Slot duration | 1–480 minutes |
| Concurrent bookings | 1–100 |
| Advance booking | 0–365 days (0 means no limit) |
| Minimum notice | 0–10080 minutes |

`create` also checks three things:

- the address belongs to the company;
- the service exists and is offered at that address;
- no configuration with the same key exists yet (otherwise it raises
  `ConfigAlreadyExistsError`).

`update` changes only the fields that are given. It checks the result
against the same limits.

## Available slots

`slotbooking.available_slots.GetAvailableSlots` lists the slots for a
company address, service and date.

Slots run from opening time in steps of the slot duration. A slot that
would end after closing time is left out. For today's date, slots that
start before the current time plus the minimum notice are left out too.

Each `Slot` shows how many places are free. It only counts active
bookings that truly overlap the slot. Intervals that only touch end to
start do not count as overlapping.

A date in the past raises `InvalidDateError`. A date beyond the advance
limit raises `DateTooFarInFutureError`. On a day when the company is
closed, the result has no slots.

```python
from datetime import date
from slotbooking.available_slots import GetAvailableSlots
from slotbooking.config_models import SlotsConfig
from slotbooking.usecase_models import SlotsRequest

default_config = SlotsConfig(
    slot_duration_minutes=30,
    max_concurrent_bookings=1,
    advance_booking_days=30,
    min_booking_notice_minutes=60,
)
usecase = GetAvailableSlots(booking_repo, config_repo, seller_client, logger, default_config)
response = usecase.execute(SlotsRequest(
    user_id=42, company_id=1, address_id=10, service_id=5, date=date(2025, 10, 15),
))
for slot in response.slots:
    print(slot.start_time, slot.available_spots, "/", slot.total_spots)
```

The pure helpers are in `slotbooking.slots`:

- `generate_time_slots`
- `calculate_available_spots`
- `count_overlapping_bookings`
- `get_working_hours_for_day`
- `is_same_day`
- `is_date_in_past`

## Creating bookings

`slotbooking.create_booking.CreateBooking` takes these arguments:

```
CreateBooking(booking_repo, config_repo, seller_client, user_client, tx_manager,
              logger, default_config, time_provider=None)
```

It first checks the request, the company, the address, the service and
the user's selected car. Then, inside `tx_manager.do_serializable`, it:

1. checks the date and the minimum notice;
2. counts the active bookings that overlap the chosen slot;
3. stores a confirmed `NewBooking`, with copies of the service and car
   details.

It returns a `CreateBookingResponse`. Failures raise exceptions derived
from `CreateBookingError`, for example:

- `SlotNotAvailableError`
- `TooLateToBookError`
- `CompanyClosedError`
- `CarNotFoundError`

## Managing bookings

`slotbooking.booking_service.BookingService(booking_repo, seller_client, logger)`
offers these operations:

- `get_by_id(booking_id, user_id)` returns a booking to its owner or to a
  manager of its company.
- `get_user_bookings(GetUserBookingsRequest(...))` lists a user's
  bookings, optionally by status.
- `get_company_bookings(GetCompanyBookingsRequest(...))` lists a
  company's bookings for managers. It can filter by address, period,
  status and inactive bookings.
- `cancel(booking_id, CancelBookingRequest(...))` cancels a booking.
  When the owner cancels, the status becomes `cancelled_by_user`. When a
  manager cancels, it becomes `cancelled_by_company`.
- `update_status(booking_id, UpdateStatusRequest(...))` changes a
  booking's status. Only managers may do this.

Statuses are the members of `slotbooking.booking_models.BookingStatus`.
Unknown status names raise `InvalidInputError`.