"""Reading, cancelling and re-statusing bookings, with owner and manager access checks."""

from __future__ import annotations

from typing import Any, Optional

from slotbooking.booking_models import (
    BookingListResponse,
    BookingResponse,
    BookingStatus,
    GetCompanyBookingsRequest,
    GetUserBookingsRequest,
    CancelBookingRequest,
    UpdateStatusRequest,
    InvalidStatusError,
    from_domain_booking,
    from_domain_booking_list,
    to_domain_booking_status,
)
from slotbooking.ports import (
    BookingNotFoundInStore,
    BookingRepository,
    LogSink,
    SellerCompanyNotFound,
    SellerServiceClient,
)


class BookingServiceError(Exception):
    """Base class for booking service errors."""

    base_message = "booking service error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.base_message}: {detail}" if detail else self.base_message)


class BookingNotFoundError(BookingServiceError):
    """The booking does not exist."""

    base_message = "booking not found"


class CompanyNotFoundError(BookingServiceError):
    """The company does not exist."""

    base_message = "company not found"


class ServiceNotFoundError(BookingServiceError):
    """The service does not exist."""

    base_message = "service not found"


class CarNotFoundError(BookingServiceError):
    """The user has no selected car."""

    base_message = "user has no selected car"


class AccessDeniedError(BookingServiceError):
    """The user may not perform this action."""

    base_message = "access denied"


class CannotCancelError(BookingServiceError):
    """The booking is in a state that cannot be cancelled."""

    base_message = "booking cannot be cancelled"


class InvalidBookingStatusError(BookingServiceError):
    """The status is not allowed."""

    base_message = "invalid booking status"


class InvalidInputError(BookingServiceError):
    """The request holds invalid data."""

    base_message = "invalid input data"


class InvalidBookingDateError(BookingServiceError):
    """The booking date is invalid."""

    base_message = "invalid booking date"


class InvalidTimeRangeError(BookingServiceError):
    """The time range is invalid."""

    base_message = "invalid time range"


class InternalServiceError(BookingServiceError):
    """A backend failed."""

    base_message = "service: internal error"


class BookingService:
    """Operations on existing bookings for their owners and company managers."""

    def __init__(
        self,
        booking_repo: BookingRepository,
        seller_client: SellerServiceClient,
        logger: LogSink,
    ) -> None:
        self._bookings = booking_repo
        self._seller = seller_client
        self._log = logger

    def _fetch(self, operation: str, booking_id: int) -> Any:
        try:
            return self._bookings.get_by_id(booking_id)
        except BookingNotFoundInStore:
            self._log.warn("%s: booking id=%s not found", operation, booking_id)
            raise BookingNotFoundError() from None
        except Exception as err:
            self._log.error("%s: repository error for booking id=%s: %s", operation, booking_id, err)
            raise InternalServiceError(f"{operation} - repository error: {err}") from err

    def get_by_id(self, booking_id: int, user_id: int) -> Optional[BookingResponse]:
        """The booking, if the user owns it or manages its company."""
        self._log.info("GetByID: fetching booking id=%s for user=%s", booking_id, user_id)
        booking = self._fetch("GetByID", booking_id)
        try:
            self._check_user_access(booking, user_id)
        except BookingServiceError:
            self._log.warn("GetByID: access denied for user=%s to booking id=%s", user_id, booking_id)
            raise
        self._log.info("GetByID: successfully fetched booking id=%s", booking_id)
        return from_domain_booking(booking)

    def get_user_bookings(self, request: GetUserBookingsRequest) -> BookingListResponse:
        """A user's bookings, optionally only those of one status."""
        self._log.info(
            "GetUserBookings: fetching bookings for user=%s, status=%s", request.user_id, request.status
        )
        status: Optional[BookingStatus] = None
        if request.status is not None:
            try:
                status = to_domain_booking_status(request.status)
            except InvalidStatusError:
                self._log.warn(
                    "GetUserBookings: invalid status=%s for user=%s", request.status, request.user_id
                )
                raise InvalidInputError("invalid status") from None
        try:
            bookings = self._bookings.get_by_user_id(request.user_id, status)
        except Exception as err:
            self._log.error("GetUserBookings: repository error for user=%s: %s", request.user_id, err)
            raise InternalServiceError(f"GetUserBookings - repository error: {err}") from err
        bookings = list(bookings) if bookings is not None else None
        self._log.info(
            "GetUserBookings: successfully fetched %s bookings for user=%s",
            len(bookings or ()),
            request.user_id,
        )
        return from_domain_booking_list(bookings)

    def get_company_bookings(self, request: GetCompanyBookingsRequest) -> BookingListResponse:
        """A company's bookings under the request's filters; managers only."""
        parts = [f"GetCompanyBookings: fetching bookings for company={request.company_id}, user={request.user_id}"]
        if request.address_id is not None:
            parts.append(f"address={request.address_id}")
        if request.start_date is not None and request.end_date is not None:
            parts.append(
                f"period={request.start_date.strftime('%Y-%m-%d')} to {request.end_date.strftime('%Y-%m-%d')}"
            )
        if request.status is not None:
            parts.append(f"status={request.status}")
        if request.include_inactive:
            parts.append("includeInactive=true")
        self._log.info("%s", ", ".join(parts))

        self._check_manager_access(request.company_id, request.user_id)

        try:
            booking_filter = request.to_domain_filter()
        except InvalidStatusError as err:
            self._log.warn(
                "GetCompanyBookings: invalid filter for company=%s: %s", request.company_id, err
            )
            raise InvalidInputError("invalid filter") from None

        try:
            bookings = self._bookings.get_by_company_with_filter(booking_filter)
        except Exception as err:
            self._log.error(
                "GetCompanyBookings: repository error for company=%s: %s", request.company_id, err
            )
            raise InternalServiceError(f"GetCompanyBookings - repository error: {err}") from err
        bookings = list(bookings) if bookings is not None else None
        self._log.info(
            "GetCompanyBookings: successfully fetched %s bookings for company=%s",
            len(bookings or ()),
            request.company_id,
        )
        return from_domain_booking_list(bookings)

    def cancel(self, booking_id: int, request: CancelBookingRequest) -> None:
        """Cancel a booking as its owner or as a manager of its company."""
        self._log.info("Cancel: cancelling booking id=%s by user=%s", booking_id, request.user_id)
        booking = self._fetch("Cancel", booking_id)

        if not booking.can_be_cancelled():
            self._log.warn(
                "Cancel: booking id=%s cannot be cancelled, status=%s",
                booking_id,
                getattr(booking.status, "value", booking.status),
            )
            raise CannotCancelError()

        if booking.user_id == request.user_id:
            cancel_status = BookingStatus.CANCELLED_BY_USER
        else:
            try:
                self._check_manager_access(booking.company_id, request.user_id)
            except BookingServiceError:
                self._log.warn(
                    "Cancel: access denied for user=%s to cancel booking id=%s", request.user_id, booking_id
                )
                raise AccessDeniedError() from None
            cancel_status = BookingStatus.CANCELLED_BY_COMPANY

        try:
            self._bookings.cancel(booking_id, cancel_status, request.cancellation_reason)
        except BookingNotFoundInStore:
            self._log.warn("Cancel: booking id=%s not found during cancellation", booking_id)
            raise BookingNotFoundError() from None
        except Exception as err:
            self._log.error("Cancel: repository error for booking id=%s: %s", booking_id, err)
            raise InternalServiceError(f"Cancel - repository error: {err}") from err

        self._log.info(
            "Cancel: successfully cancelled booking id=%s with status=%s", booking_id, cancel_status.value
        )

    def update_status(self, booking_id: int, request: UpdateStatusRequest) -> None:
        """Move a booking to another status; managers of its company only."""
        self._log.info(
            "UpdateStatus: updating booking id=%s to status=%s by user=%s",
            booking_id,
            request.status,
            request.user_id,
        )
        booking = self._fetch("UpdateStatus", booking_id)
        self._check_manager_access(booking.company_id, request.user_id)

        try:
            new_status = to_domain_booking_status(request.status)
        except InvalidStatusError:
            self._log.warn(
                "UpdateStatus: invalid status=%s for booking id=%s", request.status, booking_id
            )
            raise InvalidInputError("invalid status") from None

        try:
            self._bookings.update_status(booking_id, new_status)
        except BookingNotFoundInStore:
            self._log.warn("UpdateStatus: booking id=%s not found during update", booking_id)
            raise BookingNotFoundError() from None
        except Exception as err:
            self._log.error("UpdateStatus: repository error for booking id=%s: %s", booking_id, err)
            raise InternalServiceError(f"UpdateStatus - repository error: {err}") from err

        self._log.info(
            "UpdateStatus: successfully updated booking id=%s to status=%s", booking_id, new_status.value
        )

    def _check_user_access(self, booking: Any, user_id: int) -> None:
        if booking.user_id == user_id:
            return
        try:
            self._check_manager_access(booking.company_id, user_id)
        except BookingServiceError:
            raise AccessDeniedError() from None

    def _check_manager_access(self, company_id: int, user_id: int) -> None:
        try:
            company = self._seller.get_company(company_id)
        except SellerCompanyNotFound:
            self._log.warn("checkManagerAccess: company id=%s not found", company_id)
            raise CompanyNotFoundError() from None
        except Exception as err:
            self._log.error("checkManagerAccess: failed to get company id=%s: %s", company_id, err)
            raise InternalServiceError(f"checkManagerAccess - failed to get company: {err}") from err

        if user_id in company.manager_ids:
            self._log.info("checkManagerAccess: user=%s is manager of company=%s", user_id, company_id)
            return
        self._log.warn("checkManagerAccess: user=%s is not a manager of company=%s", user_id, company_id)
        raise AccessDeniedError()