import dataclasses
from types import SimpleNamespace

import pytest

from slotbooking.config_models import (
    CreateConfigRequest,
    DeleteConfigRequest,
    GetConfigRequest,
    SlotsConfig,
    UpdateConfigRequest,
)
from slotbooking.config_service import (
    AccessDeniedError,
    AddressNotFoundError,
    CompanyNotFoundError,
    ConfigAlreadyExistsError,
    ConfigNotFoundError,
    ConfigService,
    ConfigServiceError,
    InternalServiceError,
    InvalidInputError,
    ServiceNotFoundError,
)
from slotbooking.ports import (
    ConfigNotFoundInStore,
    SellerCompanyNotFound,
    SellerServiceNotFound,
)

COMPANY = 10
MANAGER = 1
STRANGER = 2
ADDRESS = 100
OTHER_ADDRESS = 200
SERVICE = 7


class FakeLogger:
    def __init__(self):
        self.records = []

    def _add(self, level, message, args):
        self.records.append((level, message % args if args else message))

    def info(self, message, *args):
        self._add("info", message, args)

    def warn(self, message, *args):
        self._add("warn", message, args)

    def error(self, message, *args):
        self._add("error", message, args)


class FakeRepo:
    def __init__(self):
        self.configs = {}
        self.next_id = 1
        self.fail = False

    def _check(self):
        if self.fail:
            raise RuntimeError("db down")

    def add(self, config):
        stored = dataclasses.replace(config, id=self.next_id)
        self.configs[stored.id] = stored
        self.next_id += 1
        return dataclasses.replace(stored)

    def create(self, config):
        self._check()
        return self.add(config)

    def get_by_id(self, config_id):
        self._check()
        if config_id not in self.configs:
            raise ConfigNotFoundInStore()
        return dataclasses.replace(self.configs[config_id])

    def _match(self, company_id, address_id, service_id):
        for config in self.configs.values():
            if (config.company_id, config.address_id, config.service_id) == (
                company_id,
                address_id,
                service_id,
            ):
                return config
        return None

    def get_by_company_address_and_service(self, company_id, address_id, service_id):
        self._check()
        found = self._match(company_id, address_id, service_id)
        if found is None:
            raise ConfigNotFoundInStore()
        return dataclasses.replace(found)

    def get_config_with_hierarchy(self, company_id, address_id, service_id):
        self._check()
        for key in ((address_id, service_id), (address_id, None), (None, service_id), (None, None)):
            found = self._match(company_id, *key)
            if found is not None:
                return dataclasses.replace(found)
        raise ConfigNotFoundInStore()

    def get_all_by_company(self, company_id):
        self._check()
        return [dataclasses.replace(c) for c in self.configs.values() if c.company_id == company_id]

    def update(self, config_id, config):
        self._check()
        if config_id not in self.configs:
            raise ConfigNotFoundInStore()
        self.configs[config_id] = dataclasses.replace(config)
        return dataclasses.replace(config)

    def delete(self, config_id):
        self._check()
        if self.configs.pop(config_id, None) is None:
            raise ConfigNotFoundInStore()

    def delete_by_company_address_and_service(self, company_id, address_id, service_id):
        self._check()
        found = self._match(company_id, address_id, service_id)
        if found is None:
            raise ConfigNotFoundInStore()
        del self.configs[found.id]


class FakeSeller:
    def __init__(self):
        self.companies = {
            COMPANY: SimpleNamespace(
                manager_ids=[MANAGER],
                addresses=[SimpleNamespace(id=ADDRESS), SimpleNamespace(id=OTHER_ADDRESS)],
            )
        }
        self.services = {(COMPANY, SERVICE): SimpleNamespace(address_ids=[ADDRESS])}
        self.fail = False

    def get_company(self, company_id):
        if self.fail:
            raise RuntimeError("seller down")
        if company_id not in self.companies:
            raise SellerCompanyNotFound()
        return self.companies[company_id]

    def get_service(self, company_id, service_id):
        if self.fail:
            raise RuntimeError("seller down")
        if (company_id, service_id) not in self.services:
            raise SellerServiceNotFound()
        return self.services[(company_id, service_id)]


@pytest.fixture
def env():
    repo, seller, logger = FakeRepo(), FakeSeller(), FakeLogger()
    return SimpleNamespace(repo=repo, seller=seller, logger=logger, service=ConfigService(repo, seller, logger))


def make_config(**overrides):
    values = dict(
        company_id=COMPANY,
        slot_duration_minutes=30,
        max_concurrent_bookings=2,
        advance_booking_days=14,
        min_booking_notice_minutes=60,
    )
    values.update(overrides)
    return SlotsConfig(**values)


def create_request(**overrides):
    values = dict(
        user_id=MANAGER,
        company_id=COMPANY,
        slot_duration_minutes=30,
        max_concurrent_bookings=2,
        advance_booking_days=14,
        min_booking_notice_minutes=60,
    )
    values.update(overrides)
    return CreateConfigRequest(**values)


def test_create_stores_and_returns_config(env):
    response = env.service.create(create_request(address_id=ADDRESS, service_id=SERVICE))
    assert response.id in env.repo.configs
    stored = env.repo.configs[response.id]
    assert (stored.address_id, stored.service_id) == (ADDRESS, SERVICE)
    assert response.slot_duration_minutes == 30
    assert response.max_concurrent_bookings == 2
    assert response.company_id == COMPANY


def test_create_accepts_upper_bounds(env):
    response = env.service.create(
        create_request(
            slot_duration_minutes=480,
            max_concurrent_bookings=100,
            advance_booking_days=365,
            min_booking_notice_minutes=10080,
        )
    )
    assert response.advance_booking_days == 365
    assert response.min_booking_notice_minutes == 10080


@pytest.mark.parametrize(
    "field, value",
    [
        ("slot_duration_minutes", 0),
        ("slot_duration_minutes", 481),
        ("max_concurrent_bookings", 0),
        ("max_concurrent_bookings", 101),
        ("advance_booking_days", -1),
        ("advance_booking_days", 366),
        ("min_booking_notice_minutes", -1),
        ("min_booking_notice_minutes", 10081),
    ],
)
def test_create_rejects_out_of_range(env, field, value):
    with pytest.raises(InvalidInputError):
        env.service.create(create_request(**{field: value}))
    assert env.repo.configs == {}


def test_create_unknown_company(env):
    with pytest.raises(CompanyNotFoundError):
        env.service.create(create_request(company_id=999))


def test_create_seller_failure_is_internal(env):
    env.seller.fail = True
    with pytest.raises(InternalServiceError):
        env.service.create(create_request())


def test_create_requires_manager(env):
    with pytest.raises(AccessDeniedError):
        env.service.create(create_request(user_id=STRANGER))


def test_create_unknown_address(env):
    with pytest.raises(AddressNotFoundError):
        env.service.create(create_request(address_id=555))


def test_create_unknown_service(env):
    with pytest.raises(ServiceNotFoundError):
        env.service.create(create_request(service_id=555))


def test_create_service_not_at_address(env):
    with pytest.raises(InvalidInputError, match="service is not available at this address"):
        env.service.create(create_request(address_id=OTHER_ADDRESS, service_id=SERVICE))


def test_create_duplicate(env):
    env.service.create(create_request(address_id=ADDRESS))
    with pytest.raises(ConfigAlreadyExistsError):
        env.service.create(create_request(address_id=ADDRESS))
    assert len(env.repo.configs) == 1


def test_create_repository_failure_is_internal(env):
    env.repo.fail = True
    with pytest.raises(InternalServiceError):
        env.service.create(create_request())


def test_get_by_id(env):
    stored = env.repo.add(make_config())
    response = env.service.get_by_id(stored.id)
    assert response.id == stored.id
    assert response.min_booking_notice_minutes == 60


def test_get_by_id_missing(env):
    with pytest.raises(ConfigNotFoundError) as info:
        env.service.get_by_id(42)
    assert str(info.value) == "config not found"
    assert isinstance(info.value, ConfigServiceError)


def test_get_with_hierarchy_prefers_most_specific(env):
    env.repo.add(make_config())
    env.repo.add(make_config(address_id=ADDRESS))
    specific = env.repo.add(make_config(address_id=ADDRESS, service_id=SERVICE))
    response = env.service.get_with_hierarchy(
        GetConfigRequest(company_id=COMPANY, address_id=ADDRESS, service_id=SERVICE)
    )
    assert response.id == specific.id
    assert any("level: service@address" in text for _, text in env.logger.records)


def test_get_with_hierarchy_falls_back_to_global(env):
    general = env.repo.add(make_config())
    response = env.service.get_with_hierarchy(
        GetConfigRequest(company_id=COMPANY, address_id=OTHER_ADDRESS, service_id=SERVICE)
    )
    assert response.id == general.id
    assert any("level: global" in text for _, text in env.logger.records)


def test_get_with_hierarchy_not_found(env):
    with pytest.raises(ConfigNotFoundError):
        env.service.get_with_hierarchy(GetConfigRequest(company_id=COMPANY))


def test_get_all_by_company(env):
    first = env.repo.add(make_config())
    second = env.repo.add(make_config(address_id=ADDRESS))
    env.repo.add(make_config(company_id=77))
    result = env.service.get_all_by_company(COMPANY, MANAGER)
    assert [c.id for c in result.configs] == [first.id, second.id]


def test_get_all_by_company_requires_manager(env):
    with pytest.raises(AccessDeniedError):
        env.service.get_all_by_company(COMPANY, STRANGER)


def test_update_changes_only_given_fields(env):
    stored = env.repo.add(make_config())
    response = env.service.update(
        stored.id, UpdateConfigRequest(user_id=MANAGER, max_concurrent_bookings=5)
    )
    assert response.max_concurrent_bookings == 5
    assert response.slot_duration_minutes == stored.slot_duration_minutes
    assert env.repo.configs[stored.id].max_concurrent_bookings == 5


def test_update_invalid_leaves_config_unchanged(env):
    stored = env.repo.add(make_config())
    with pytest.raises(InvalidInputError):
        env.service.update(stored.id, UpdateConfigRequest(user_id=MANAGER, slot_duration_minutes=0))
    assert env.repo.configs[stored.id] == stored


def test_update_requires_manager(env):
    stored = env.repo.add(make_config())
    with pytest.raises(AccessDeniedError):
        env.service.update(stored.id, UpdateConfigRequest(user_id=STRANGER, advance_booking_days=3))
    assert env.repo.configs[stored.id] == stored


def test_update_missing(env):
    with pytest.raises(ConfigNotFoundError):
        env.service.update(9, UpdateConfigRequest(user_id=MANAGER))


def test_delete(env):
    stored = env.repo.add(make_config())
    env.service.delete(stored.id, MANAGER)
    assert stored.id not in env.repo.configs


def test_delete_requires_manager(env):
    stored = env.repo.add(make_config())
    with pytest.raises(AccessDeniedError):
        env.service.delete(stored.id, STRANGER)
    assert stored.id in env.repo.configs


def test_delete_missing(env):
    with pytest.raises(ConfigNotFoundError):
        env.service.delete(9, MANAGER)


def test_delete_by_key(env):
    kept = env.repo.add(make_config())
    removed = env.repo.add(make_config(address_id=ADDRESS))
    env.service.delete_by_key(DeleteConfigRequest(user_id=MANAGER, company_id=COMPANY, address_id=ADDRESS))
    assert list(env.repo.configs) == [kept.id]
    assert removed.id not in env.repo.configs


def test_delete_by_key_not_found(env):
    with pytest.raises(ConfigNotFoundError):
        env.service.delete_by_key(DeleteConfigRequest(user_id=MANAGER, company_id=COMPANY, service_id=SERVICE))


def test_delete_by_key_unknown_company(env):
    with pytest.raises(CompanyNotFoundError):
        env.service.delete_by_key(DeleteConfigRequest(user_id=MANAGER, company_id=999))


def test_delete_by_key_repository_failure(env):
    env.repo.fail = True
    with pytest.raises(InternalServiceError, match="db down"):
        env.service.delete_by_key(DeleteConfigRequest(user_id=MANAGER, company_id=COMPANY))