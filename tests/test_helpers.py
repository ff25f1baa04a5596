"""
Tests de los helpers de base de datos.
"""

from datetime import timedelta

import pytest

from sandbox_core.db.helpers import (
    create_spec,
    delete_spec,
    find_mock_records_by_resource,
    get_api_calls_since,
    get_app_settings,
    get_environment_for_spec,
    get_mock_record,
    get_spec_by_id,
    list_api_calls,
    list_mock_records,
    list_specs,
    record_api_call,
    save_environment,
    set_mock_data,
    update_app_settings,
)
from sandbox_core.db.models import ApiCallLog, utcnow


def test_create_spec_derives_metadata(session, petstore):
    spec = create_spec(session, "Petstore", petstore)

    assert spec.id
    assert spec.version == "1.0.7"
    assert spec.description == "Sample pet store"
    assert spec.endpoint_count == 5
    assert spec.document["info"]["title"] == "Petstore"


def test_create_spec_with_existing_id_overwrites(session, petstore):
    spec = create_spec(session, "Petstore", petstore)
    petstore["info"]["version"] = "2.0.0"

    updated = create_spec(session, "Petstore v2", petstore, spec_id=spec.id)

    assert updated.id == spec.id
    assert updated.version == "2.0.0"
    assert [s.name for s in list_specs(session)] == ["Petstore v2"]


def test_delete_spec_cascades(session, petstore):
    spec = create_spec(session, "Petstore", petstore)
    set_mock_data(session, "/pet", [{"id": 1}], spec_id=spec.id)
    save_environment(session, spec.id, "env-1", "env", 3100, "/tmp/env-1.json")
    record_api_call(session, "GET", "/pet", 200, 3.0, spec_id=spec.id, spec_name=spec.name)
    session.commit()

    assert delete_spec(session, spec.id) is True
    session.commit()
    session.expire_all()

    assert get_spec_by_id(session, spec.id) is None
    assert get_mock_record(session, "/pet") is None
    assert get_environment_for_spec(session, spec.id) is None
    # El log se conserva sin spec_id
    log = list_api_calls(session)[0]
    assert log.spec_id is None
    assert log.spec_name == "Petstore"

    assert delete_spec(session, spec.id) is False


def test_set_mock_data_upserts(session):
    set_mock_data(session, "/pet", [{"id": 1}])
    set_mock_data(session, "/pet", [{"id": 1}, {"id": 2}])

    assert len(list_mock_records(session)) == 1
    assert get_mock_record(session, "/pet").data == [{"id": 1}, {"id": 2}]


def test_find_mock_records_by_resource(session):
    set_mock_data(session, "/pet/12", {"id": 12})
    set_mock_data(session, "/pet/123", {"id": 123})

    assert [r.key for r in find_mock_records_by_resource(session, "12")] == ["/pet/12"]


def test_save_environment_replaces_previous(session, petstore):
    spec = create_spec(session, "Petstore", petstore)
    save_environment(session, spec.id, "env-1", "env", 3100, "/tmp/env-1.json")
    save_environment(session, spec.id, "env-2", "env", 3101, "/tmp/env-2.json")

    assert get_environment_for_spec(session, spec.id).id == "env-2"


def test_list_api_calls_filters_and_order(session):
    now = utcnow()
    for minutes_ago, (method, path, status) in zip(
        (5, 3, 1), (("get", "/a", 200), ("POST", "/b", 201), ("GET", "/c", 404))
    ):
        call = record_api_call(session, method, path, status, 1.0)
        call.created_at = now - timedelta(minutes=minutes_ago)
    session.flush()

    assert [c.path for c in list_api_calls(session)] == ["/c", "/b", "/a"]
    assert [c.path for c in list_api_calls(session, method="get")] == ["/c", "/a"]
    assert [c.path for c in list_api_calls(session, status_code=201)] == ["/b"]
    assert [c.path for c in list_api_calls(session, limit=1, offset=1)] == ["/b"]


def test_get_api_calls_since(session):
    old = record_api_call(session, "GET", "/old", 200, 1.0)
    old.created_at = utcnow() - timedelta(days=2)
    record_api_call(session, "GET", "/new", 200, 1.0)
    session.flush()

    calls = get_api_calls_since(session, utcnow() - timedelta(hours=24))
    assert [c.path for c in calls] == ["/new"]
    assert isinstance(calls[0], ApiCallLog)


def test_app_settings_defaults_and_update(session):
    assert get_app_settings(session) == {"autoMock": True, "defaultDelay": 0}

    updated = update_app_settings(session, {"defaultDelay": 150})

    assert updated == {"autoMock": True, "defaultDelay": 150}
    assert get_app_settings(session)["defaultDelay"] == 150


@pytest.mark.parametrize(
    "updates",
    [
        {"defaultDelay": -1},
        {"defaultDelay": "100"},
        {"defaultDelay": True},
        {"autoMock": "yes"},
        {"unknownSetting": 1},
    ],
)
def test_app_settings_validation(session, updates):
    with pytest.raises(ValueError):
        update_app_settings(session, updates)


def test_find_mock_records_by_resource_treats_wildcards_literally(session):
    set_mock_data(session, "/pet/12", {"id": 12})
    set_mock_data(session, "/pet/132", {"id": 132})
    set_mock_data(session, "/pet/1_2", {"id": "1_2"})

    assert find_mock_records_by_resource(session, "%") == []
    assert [r.key for r in find_mock_records_by_resource(session, "1_2")] == ["/pet/1_2"]
    assert [r.key for r in find_mock_records_by_resource(session, "1%")] == []
