"""Interfaces the booking services depend on, and the errors their backends raise."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional, Protocol, Sequence, TypeVar, runtime_checkable

T = TypeVar("T")


class BookingNotFoundInStore(LookupError):
    """The booking store has no such booking."""

    def __init__(self, message: str = "booking not found") -> None:
        super().__init__(message)


class ConfigNotFoundInStore(LookupError):
    """The configuration store has no matching slot configuration."""

    def __init__(self, message: str = "config not found") -> None:
        super().__init__(message)


class SellerCompanyNotFound(LookupError):
    """The seller service has no such company."""

    def __init__(self, message: str = "company not found") -> None:
        super().__init__(message)


class SellerServiceNotFound(LookupError):
    """The seller service has no such service."""

    def __init__(self, message: str = "service not found") -> None:
        super().__init__(message)


class SelectedCarNotFound(LookupError):
    """The user service has no selected car for the user."""

    def __init__(self, message: str = "user has no selected car") -> None:
        super().__init__(message)


@runtime_checkable
class BookingRepository(Protocol):
    """Storage of bookings."""

    def create(self, booking: Any) -> Any: ...

    def get_by_id(self, booking_id: int) -> Any: ...

    def get_by_user_id(self, user_id: int, status: Optional[Any]) -> Sequence[Any]: ...

    def get_by_company_with_filter(self, booking_filter: Any) -> Sequence[Any]: ...

    def update_status(self, booking_id: int, status: Any) -> None: ...

    def cancel(self, booking_id: int, status: Any, reason: str) -> None: ...


@runtime_checkable
class ConfigRepository(Protocol):
    """Storage of slot configurations."""

    def create(self, config: Any) -> Any: ...

    def get_by_id(self, config_id: int) -> Any: ...

    def get_by_company_address_and_service(
        self, company_id: int, address_id: Optional[int], service_id: Optional[int]
    ) -> Any: ...

    def get_config_with_hierarchy(
        self, company_id: int, address_id: Optional[int], service_id: Optional[int]
    ) -> Any: ...

    def get_all_by_company(self, company_id: int) -> Sequence[Any]: ...

    def update(self, config_id: int, config: Any) -> Any: ...

    def delete(self, config_id: int) -> None: ...

    def delete_by_company_address_and_service(
        self, company_id: int, address_id: Optional[int], service_id: Optional[int]
    ) -> None: ...


@runtime_checkable
class SellerServiceClient(Protocol):
    """Client for companies and their services."""

    def get_company(self, company_id: int) -> Any: ...

    def get_service(self, company_id: int, service_id: int) -> Any: ...


@runtime_checkable
class UserServiceClient(Protocol):
    """Client for users and their cars."""

    def get_selected_car(self, tg_user_id: int) -> Any: ...


@runtime_checkable
class TransactionManager(Protocol):
    """Runs a callable inside a serializable transaction and returns its result."""

    def do_serializable(self, fn: Callable[[], T]) -> T: ...


@runtime_checkable
class TimeProvider(Protocol):
    """Source of the current time."""

    def now(self) -> datetime: ...


@runtime_checkable
class LogSink(Protocol):
    """Printf-style logger used by the services."""

    def info(self, message: str, *args: Any) -> None: ...

    def warn(self, message: str, *args: Any) -> None: ...

    def error(self, message: str, *args: Any) -> None: ...


class SystemClock:
    """Time provider reading the system clock."""

    def now(self) -> datetime:
        return datetime.now()