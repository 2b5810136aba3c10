"""Managing slot configurations of companies, with manager access checks."""

from __future__ import annotations

import copy
from typing import Any, Optional

from slotbooking.config_models import (
    ConfigListResponse,
    ConfigResponse,
    CreateConfigRequest,
    DeleteConfigRequest,
    GetConfigRequest,
    SlotsConfig,
    UpdateConfigRequest,
    from_domain_config,
    from_domain_config_list,
)
from slotbooking.ports import (
    ConfigNotFoundInStore,
    ConfigRepository,
    LogSink,
    SellerCompanyNotFound,
    SellerServiceClient,
    SellerServiceNotFound,
)

MAX_SLOT_DURATION_MINUTES = 480
MAX_CONCURRENT_BOOKINGS = 100
MAX_ADVANCE_BOOKING_DAYS = 365
MAX_MIN_BOOKING_NOTICE_MINUTES = 10080


class ConfigServiceError(Exception):
    """Base class for configuration service errors."""

    base_message = "config service error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.base_message}: {detail}" if detail else self.base_message)


class ConfigNotFoundError(ConfigServiceError):
    """The configuration does not exist."""

    base_message = "config not found"


class CompanyNotFoundError(ConfigServiceError):
    """The company does not exist."""

    base_message = "company not found"


class AddressNotFoundError(ConfigServiceError):
    """The address does not belong to the company."""

    base_message = "address not found"


class ServiceNotFoundError(ConfigServiceError):
    """The service does not exist."""

    base_message = "service not found"


class AccessDeniedError(ConfigServiceError):
    """The user may not perform this action."""

    base_message = "access denied"


class InvalidInputError(ConfigServiceError):
    """The request holds invalid data."""

    base_message = "invalid input data"


class ConfigAlreadyExistsError(ConfigServiceError):
    """A configuration with the same key already exists."""

    base_message = "config already exists"


class InternalServiceError(ConfigServiceError):
    """A backend failed."""

    base_message = "service: internal error"


def _validate_config_data(
    slot_duration: int, max_concurrent: int, advance_days: int, min_notice: int
) -> None:
    if not 0 < slot_duration <= MAX_SLOT_DURATION_MINUTES:
        raise InvalidInputError("slotDurationMinutes must be between 1 and 480")
    if not 0 < max_concurrent <= MAX_CONCURRENT_BOOKINGS:
        raise InvalidInputError("maxConcurrentBookings must be between 1 and 100")
    if not 0 <= advance_days <= MAX_ADVANCE_BOOKING_DAYS:
        raise InvalidInputError("advanceBookingDays must be between 0 and 365")
    if not 0 <= min_notice <= MAX_MIN_BOOKING_NOTICE_MINUTES:
        raise InvalidInputError("minBookingNoticeMinutes must be between 0 and 10080")


def _validate_config(config: SlotsConfig) -> None:
    _validate_config_data(
        config.slot_duration_minutes,
        config.max_concurrent_bookings,
        config.advance_booking_days,
        config.min_booking_notice_minutes,
    )


def _is_manager(company: Any, user_id: int) -> bool:
    return user_id in company.manager_ids


def _address_exists(company: Any, address_id: int) -> bool:
    return any(address.id == address_id for address in company.addresses)


def _service_at_address(service: Any, address_id: int) -> bool:
    return address_id in service.address_ids


def _config_level(config: SlotsConfig) -> str:
    if config.is_service_at_address():
        return "service@address"
    if config.is_address_specific():
        return "address"
    if config.is_service_specific():
        return "service"
    return "global"


class ConfigService:
    """Create, read, update and delete slot configurations."""

    def __init__(
        self,
        config_repo: ConfigRepository,
        seller_client: SellerServiceClient,
        logger: LogSink,
    ) -> None:
        self._configs = config_repo
        self._seller = seller_client
        self._log = logger

    def _company(self, operation: str, company_id: int) -> Any:
        try:
            return self._seller.get_company(company_id)
        except SellerCompanyNotFound:
            self._log.warn("%s: company id=%s not found", operation, company_id)
            raise CompanyNotFoundError() from None
        except Exception as err:
            self._log.error("%s: failed to get company id=%s: %s", operation, company_id, err)
            raise InternalServiceError(f"failed to get company: {err}") from err

    def _manager_company(self, operation: str, company_id: int, user_id: int) -> Any:
        company = self._company(operation, company_id)
        if not _is_manager(company, user_id):
            self._log.warn(
                "%s: user=%s is not a manager of company=%s", operation, user_id, company_id
            )
            raise AccessDeniedError()
        return company

    def _fetch(self, operation: str, config_id: int) -> SlotsConfig:
        try:
            return self._configs.get_by_id(config_id)
        except ConfigNotFoundInStore:
            self._log.warn("%s: config id=%s not found", operation, config_id)
            raise ConfigNotFoundError() from None
        except Exception as err:
            self._log.error("%s: repository error for config id=%s: %s", operation, config_id, err)
            raise InternalServiceError(f"{operation} - repository error: {err}") from err

    def create(self, request: CreateConfigRequest) -> Optional[ConfigResponse]:
        """Create a configuration; managers only, company, address and service must exist."""
        self._log.info(
            "Create: creating config for company=%s, address=%s, service=%s by user=%s",
            request.company_id,
            request.address_id,
            request.service_id,
            request.user_id,
        )
        try:
            _validate_config_data(
                request.slot_duration_minutes,
                request.max_concurrent_bookings,
                request.advance_booking_days,
                request.min_booking_notice_minutes,
            )
        except InvalidInputError as err:
            self._log.warn("Create: validation failed: %s", err)
            raise

        company = self._manager_company("Create", request.company_id, request.user_id)

        if request.address_id is not None and not _address_exists(company, request.address_id):
            self._log.warn(
                "Create: address id=%s not found in company=%s", request.address_id, request.company_id
            )
            raise AddressNotFoundError()

        if request.service_id is not None:
            try:
                service = self._seller.get_service(request.company_id, request.service_id)
            except SellerServiceNotFound:
                self._log.warn(
                    "Create: service id=%s not found in company=%s",
                    request.service_id,
                    request.company_id,
                )
                raise ServiceNotFoundError() from None
            except Exception as err:
                self._log.error("Create: failed to get service id=%s: %s", request.service_id, err)
                raise InternalServiceError(f"failed to get service: {err}") from err

            if request.address_id is not None and not _service_at_address(service, request.address_id):
                self._log.warn(
                    "Create: service id=%s is not available at address id=%s",
                    request.service_id,
                    request.address_id,
                )
                raise InvalidInputError("service is not available at this address")

        try:
            existing = self._configs.get_by_company_address_and_service(
                request.company_id, request.address_id, request.service_id
            )
        except ConfigNotFoundInStore:
            existing = None
        except Exception as err:
            self._log.error("Create: failed to check existing config: %s", err)
            raise InternalServiceError(f"failed to check existing config: {err}") from err
        if existing is not None:
            self._log.warn(
                "Create: config already exists for company=%s, address=%s, service=%s",
                request.company_id,
                request.address_id,
                request.service_id,
            )
            raise ConfigAlreadyExistsError()

        try:
            created = self._configs.create(request.to_domain_config())
        except Exception as err:
            self._log.error("Create: repository error: %s", err)
            raise InternalServiceError(f"Create - repository error: {err}") from err

        self._log.info("Create: successfully created config id=%s", created.id)
        return from_domain_config(created)

    def get_by_id(self, config_id: int) -> Optional[ConfigResponse]:
        """The configuration with this id; open to everyone."""
        self._log.info("GetByID: fetching config id=%s", config_id)
        config = self._fetch("GetByID", config_id)
        self._log.info("GetByID: successfully fetched config id=%s", config_id)
        return from_domain_config(config)

    def get_with_hierarchy(self, request: GetConfigRequest) -> Optional[ConfigResponse]:
        """The configuration that applies: service@address, then address, service, global."""
        self._log.info(
            "GetWithHierarchy: fetching config for company=%s, address=%s, service=%s",
            request.company_id,
            request.address_id,
            request.service_id,
        )
        try:
            config = self._configs.get_config_with_hierarchy(
                request.company_id, request.address_id, request.service_id
            )
        except ConfigNotFoundInStore:
            self._log.warn(
                "GetWithHierarchy: no config found for company=%s, address=%s, service=%s",
                request.company_id,
                request.address_id,
                request.service_id,
            )
            raise ConfigNotFoundError() from None
        except Exception as err:
            self._log.error("GetWithHierarchy: repository error: %s", err)
            raise InternalServiceError(f"GetWithHierarchy - repository error: {err}") from err

        self._log.info(
            "GetWithHierarchy: successfully fetched config id=%s (level: %s)",
            config.id,
            _config_level(config),
        )
        return from_domain_config(config)

    def get_all_by_company(self, company_id: int, user_id: int) -> ConfigListResponse:
        """Every configuration of a company; managers only."""
        self._log.info("GetAllByCompany: fetching configs for company=%s by user=%s", company_id, user_id)
        self._manager_company("GetAllByCompany", company_id, user_id)
        try:
            configs = self._configs.get_all_by_company(company_id)
        except Exception as err:
            self._log.error("GetAllByCompany: repository error for company=%s: %s", company_id, err)
            raise InternalServiceError(f"GetAllByCompany - repository error: {err}") from err
        configs = list(configs) if configs is not None else None
        self._log.info(
            "GetAllByCompany: successfully fetched %s configs for company=%s",
            len(configs or ()),
            company_id,
        )
        return from_domain_config_list(configs)

    def update(self, config_id: int, request: UpdateConfigRequest) -> Optional[ConfigResponse]:
        """Change the given fields of a configuration; managers only."""
        self._log.info("Update: updating config id=%s by user=%s", config_id, request.user_id)
        config = self._fetch("Update", config_id)

        candidate = copy.copy(config)
        request.apply_to_config(candidate)
        try:
            _validate_config(candidate)
        except InvalidInputError as err:
            self._log.warn("Update: validation failed for config id=%s: %s", config_id, err)
            raise

        self._manager_company("Update", config.company_id, request.user_id)

        request.apply_to_config(config)
        try:
            updated = self._configs.update(config_id, config)
        except ConfigNotFoundInStore:
            self._log.warn("Update: config id=%s not found during update", config_id)
            raise ConfigNotFoundError() from None
        except Exception as err:
            self._log.error("Update: repository error for config id=%s: %s", config_id, err)
            raise InternalServiceError(f"Update - repository error: {err}") from err

        self._log.info("Update: successfully updated config id=%s", config_id)
        return from_domain_config(updated)

    def delete(self, config_id: int, user_id: int) -> None:
        """Delete a configuration by id; managers only."""
        self._log.info("Delete: deleting config id=%s by user=%s", config_id, user_id)
        config = self._fetch("Delete", config_id)
        self._manager_company("Delete", config.company_id, user_id)
        try:
            self._configs.delete(config_id)
        except ConfigNotFoundInStore:
            self._log.warn("Delete: config id=%s not found during deletion", config_id)
            raise ConfigNotFoundError() from None
        except Exception as err:
            self._log.error("Delete: repository error for config id=%s: %s", config_id, err)
            raise InternalServiceError(f"Delete - repository error: {err}") from err
        self._log.info("Delete: successfully deleted config id=%s", config_id)

    def delete_by_key(self, request: DeleteConfigRequest) -> None:
        """Delete the configuration for a company, address and service; managers only."""
        self._log.info(
            "DeleteByKey: deleting config for company=%s, address=%s, service=%s by user=%s",
            request.company_id,
            request.address_id,
            request.service_id,
            request.user_id,
        )
        self._manager_company("DeleteByKey", request.company_id, request.user_id)
        try:
            self._configs.delete_by_company_address_and_service(
                request.company_id, request.address_id, request.service_id
            )
        except ConfigNotFoundInStore:
            self._log.warn(
                "DeleteByKey: config not found for company=%s, address=%s, service=%s",
                request.company_id,
                request.address_id,
                request.service_id,
            )
            raise ConfigNotFoundError() from None
        except Exception as err:
            self._log.error("DeleteByKey: repository error: %s", err)
            raise InternalServiceError(f"DeleteByKey - repository error: {err}") from err
        self._log.info(
            "DeleteByKey: successfully deleted config for company=%s, address=%s, service=%s",
            request.company_id,
            request.address_id,
            request.service_id,
        )