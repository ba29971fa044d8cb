import json
import random

import pytest

from zk_discovery.exceptions import (
    NotFoundError,
    PreconditionError,
    StoreError,
    ValidationError,
)
from zk_discovery.connection import Connection
from zk_discovery.records import REQUIRED_FIELDS
from zk_discovery.service_registry import ServiceRegistry

from conftest import BASE_PATH


def test_register_service_returns_service_directory(registry, service_params):
    path = registry.register_service(**service_params)

    assert path == f"{BASE_PATH}/service-name"


def test_registered_endpoint_is_listed(registry, store, service_params):
    path = registry.register_service(**service_params)

    endpoints = registry.get_service_endpoints("service-name")

    assert endpoints == ["service-name0000000000"]
    assert f"{path}/{endpoints[0]}" in store.ephemeral


def test_registered_payload_is_endpoint_envelope(registry, store, service_params):
    registry.register_service(**service_params)

    raw = store.nodes[f"{BASE_PATH}/service-name/service-name0000000000"]

    assert json.loads(raw.decode("utf-8")) == {
        "endpoint": "http://localhost:4000/api/v1",
        "metadata": service_params["metadata"],
    }


def test_each_registration_gets_its_own_node(registry, service_params):
    registry.register_service(**service_params)
    registry.register_service(**dict(service_params, port="4001"))

    assert registry.get_service_endpoints("service-name") == [
        "service-name0000000000",
        "service-name0000000001",
    ]


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
@pytest.mark.parametrize("empty", [None, "", 0])
def test_register_rejects_empty_required_field(registry, store, service_params, field, empty):
    service_params[field] = empty
    store.calls.clear()

    with pytest.raises(ValidationError) as exc_info:
        registry.register_service(**service_params)

    assert exc_info.value.field == field
    assert field in str(exc_info.value)
    assert store.calls == []


def test_register_names_first_missing_field(registry, service_params):
    service_params["ip"] = ""
    service_params["port"] = None

    with pytest.raises(ValidationError) as exc_info:
        registry.register_service(**service_params)

    assert exc_info.value.field == "port"


def test_register_requires_provisioned_base_path(store, service_params):
    connection = Connection(store, "/services/endpoints/missing")
    registry = ServiceRegistry(connection)

    with pytest.raises(PreconditionError):
        registry.register_service(**service_params)

    assert "/services/endpoints/missing" not in store.nodes
    assert not any(op in ("make_dirs", "create") for op, _ in store.calls)


def test_get_service_endpoints_empty_service(registry, store):
    store.make_dirs(f"{BASE_PATH}/idle-service")

    with pytest.raises(NotFoundError):
        registry.get_service_endpoints("idle-service")


def test_get_service_endpoints_unknown_service(registry):
    with pytest.raises(StoreError) as exc_info:
        registry.get_service_endpoints("unknown")

    assert exc_info.value.no_node
    assert exc_info.value.path == f"{BASE_PATH}/unknown"


def test_get_all_children_lists_services(registry, service_params):
    registry.register_service(**service_params)
    registry.register_service(**dict(service_params, name="service-name-3"))

    assert registry.get_all_children() == ["service-name", "service-name-3"]


def test_get_all_children_empty_base_path(registry):
    with pytest.raises(NotFoundError):
        registry.get_all_children()


def test_get_random_service_endpoint_stays_in_range(connection, service_params):
    registry = ServiceRegistry(connection, rng=random.Random(7))
    for port in range(4000, 4007):
        registry.register_service(**dict(service_params, port=str(port)))
    endpoints = registry.get_service_endpoints("service-name")
    seen = set()

    for _ in range(50):
        record = registry.get_random_service_endpoint(endpoints, "service-name")
        assert set(record) == {"endpoint", "metadata"}
        seen.add(record["endpoint"])

    assert seen <= {f"http://localhost:{p}/api/v1" for p in range(4000, 4007)}
    assert len(seen) > 1


def test_get_random_service_endpoint_empty_list(registry):
    with pytest.raises(NotFoundError):
        registry.get_random_service_endpoint([], "service-name")


def test_get_service_falls_back_to_text(registry, store):
    store.add_node(f"{BASE_PATH}/legacy/node", b"http://10.0.0.1:80/api")

    assert registry.get_service(f"{BASE_PATH}/legacy/node") == "http://10.0.0.1:80/api"


def test_get_service_missing_node(registry):
    with pytest.raises(StoreError) as exc_info:
        registry.get_service(f"{BASE_PATH}/service-name/gone")

    assert exc_info.value.operation == "get_data"


def test_get_service_empty_path(registry):
    with pytest.raises(ValidationError):
        registry.get_service("")
