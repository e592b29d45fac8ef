from __future__ import annotations

import pytest

from db2rest.gateway.classifier import GatewayError
from db2rest.gateway.mapper import (
    CREATED_STATUS,
    DROPPED_STATUS,
    find_entry,
    map_acknowledgement,
    map_bind_options,
    map_services,
)
from db2rest.gateway.models import BindOption, ClientError, Service


def _service(name: str, url: str | None = "https://db2.local:446/services/SYSIBMSERVICE/x") -> dict:
    entry: dict = {
        "ServiceName": name,
        "ServiceDescription": f"{name} description",
        "ServiceCollectionID": "SYSIBMSERVICE",
    }
    if url is not None:
        entry["ServiceURL"] = url
    return entry


def test_map_services_extracts_user_services() -> None:
    payload = {
        "DB2Services": [
            _service("DB2ServiceDiscover"),
            _service("DB2ServiceManager"),
            _service("getEmployee", "https://db2.local:446/services/SYSIBMSERVICE/getEmployee"),
        ]
    }
    services = map_services(payload)
    assert services == (
        Service(
            name="getEmployee",
            description="getEmployee description",
            collection_id="SYSIBMSERVICE",
            url="https://db2.local:446/services/SYSIBMSERVICE/getEmployee",
        ),
    )


def test_map_services_defaults_missing_fields() -> None:
    services = map_services({"DB2Services": [{"ServiceURL": "http://db2.local/services/x"}]})
    assert services == (
        Service(name="Unknown", description="Not provided", collection_id="N/A", url="http://db2.local/services/x"),
    )


def test_map_services_drops_entries_without_usable_url() -> None:
    payload = {
        "DB2Services": [
            _service("noUrl", url=None),
            _service("blankUrl", url="   "),
            _service("numericUrl", url=None) | {"ServiceURL": 42},
            _service("prose", url="not a url at all"),
            _service("brokenHost", url="http://[bad"),
            _service("relative", url="services/SYSIBMSERVICE/x"),
            _service("ftp", url="ftp://db2.local/x"),
            _service("noHost", url="http://"),
            "not-an-object",
            _service("kept"),
        ]
    }
    assert [service.name for service in map_services(payload)] == ["kept"]


def test_map_services_empty_list_is_success() -> None:
    assert map_services({"DB2Services": []}) == ()
    assert map_services({"DB2Services": [_service("DB2ServiceManager")]}) == ()


@pytest.mark.parametrize("payload", [{}, {"Services": []}, {"DB2Services": None}, {"DB2Services": {}}])
def test_map_services_missing_list_key_fails(payload: dict) -> None:
    with pytest.raises(GatewayError) as excinfo:
        map_services(payload)
    assert excinfo.value.error is ClientError.SERVICES_NOT_FOUND


def test_map_acknowledgement_accepts_expected_status() -> None:
    map_acknowledgement({"StatusCode": 201}, expected_status=CREATED_STATUS)
    map_acknowledgement({"StatusCode": 200}, expected_status=DROPPED_STATUS)


def test_map_acknowledgement_rejects_missing_or_wrong_status() -> None:
    with pytest.raises(GatewayError) as missing:
        map_acknowledgement({}, expected_status=CREATED_STATUS)
    assert missing.value.error is ClientError.UNKNOWN
    assert missing.value.message == "StatusCode not found"

    with pytest.raises(GatewayError) as wrong:
        map_acknowledgement({"StatusCode": 200}, expected_status=CREATED_STATUS)
    assert wrong.value.error is ClientError.UNKNOWN
    assert wrong.value.message == "StatusCode not correct"


def test_find_entry_is_case_insensitive_and_depth_first() -> None:
    payload = {
        "a": {"b": {"Target": "deep-first"}},
        "TARGET": "shallow-later",
    }
    assert find_entry(payload, "target") == "deep-first"
    assert find_entry({"x": 1}, "target") is None
    assert find_entry({"x": 1}, "target", default="fallback") == "fallback"


def test_find_entry_does_not_descend_into_lists() -> None:
    assert find_entry({"items": [{"target": 1}]}, "target") is None


def test_find_entry_returns_explicit_null_match() -> None:
    assert find_entry({"target": None, "other": {"target": 1}}, "target", default="missing") is None


def test_map_bind_options_example_from_schema() -> None:
    payload = {
        "requestschema": {
            "properties": {
                "Foo": {"enum": ["A", "B"], "description": "d"},
                "bar": {"enum": ["X"]},
            }
        }
    }
    assert map_bind_options(payload) == (BindOption(name="Foo", description="d", values=("A", "B")),)


def test_map_bind_options_searches_nested_schema_and_sorts() -> None:
    payload = {
        "StatusCode": 200,
        "DB2ServiceManager": {
            "RequestSchema": {
                "type": "object",
                "Properties": {
                    "requestType": {"enum": ["createService", "dropService"]},
                    "Qualifier": {"type": "string"},
                    "Isolation": {"enum": ["UR", "CS", "RS", "RR"], "description": "Isolation level"},
                    "Currentdata": {"enum": ["YES", "NO"]},
                    "Empty": {"enum": []},
                    "Mixed": {"enum": ["A", 1]},
                    "Élan": {"enum": ["ON"]},
                    "9lives": {"enum": ["x"]},
                },
            }
        },
    }
    options = map_bind_options(payload)
    assert [option.name for option in options] == ["Currentdata", "Isolation", "Élan"]
    assert options[0].description == "Unknown"
    assert options[1].values == ("UR", "CS", "RS", "RR")


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({}, "No RequestSchema in server response"),
        ({"requestSchema": "text"}, "No RequestSchema in server response"),
        ({"requestSchema": {"type": "object"}}, "RequestSchema doesn't have properties"),
        ({"requestSchema": {"properties": {"lower": {"enum": ["A"]}}}}, "No bind options found in response"),
        ({"requestSchema": {"properties": {"Upper": {"type": "string"}}}}, "No bind options found in response"),
    ],
)
def test_map_bind_options_failures(payload: dict, message: str) -> None:
    with pytest.raises(GatewayError) as excinfo:
        map_bind_options(payload)
    assert excinfo.value.error is ClientError.OPTIONS_NOT_FOUND
    assert excinfo.value.message == message
