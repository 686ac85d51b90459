import threading
import time
import typing
from unittest import mock

import httpx
import pytest
from pyfolioclient import ItemNotFoundError
from pytest_cases import parametrize, parametrize_with_cases

from folio_user_reconciler.reconcile import (
    DirectoryError,
    ImportBatch,
    IncomingUserRecord,
    MultipleMatches,
    NoMatch,
    SingleMatch,
    UserImporter,
    parse_user,
)

_USER = {
    "id": "a3436a5f-707a-4005-804d-303220dd035b",
    "externalSystemId": "t_gone",
    "username": "gone",
    "active": True,
    "barcode": "0001",
}


def _directory(client: mock.Mock) -> typing.Any:
    import folio_user_reconciler.folio as uut

    return uut.FolioDirectory(client)


def test_list_address_types() -> None:
    client = mock.Mock()
    client.iter_data.return_value = iter(
        [{"id": "home-id", "addressType": "Home"}, {"id": "work-id", "addressType": "Work"}],
    )

    res = _directory(client).list_address_types()

    assert res == {"Home": "home-id", "Work": "work-id"}
    client.iter_data.assert_called_once_with("/addresstypes", key="addressTypes")


def test_list_patron_groups() -> None:
    client = mock.Mock()
    client.iter_data.return_value = iter([{"id": "staff-id", "group": "staff"}])

    res = _directory(client).list_patron_groups()

    assert res == {"staff": "staff-id"}
    client.iter_data.assert_called_once_with("/groups", key="usergroups")


def test_list_catalog_malformed() -> None:
    client = mock.Mock()
    client.iter_data.return_value = iter([{"id": "staff-id"}])

    with pytest.raises(DirectoryError):
        _directory(client).list_patron_groups()


class SearchCases:
    def case_single(self) -> tuple[typing.Any, type]:
        return ({"users": [_USER], "totalRecords": 1}, SingleMatch)

    def case_none(self) -> tuple[typing.Any, type]:
        return ({"users": [], "totalRecords": 0}, NoMatch)

    def case_many(self) -> tuple[typing.Any, type]:
        return ({"users": [_USER, _USER | {"id": "b"}], "totalRecords": 2}, MultipleMatches)


@parametrize_with_cases("response,expected", cases=SearchCases)
def test_search_by_external_id(response: typing.Any, expected: type) -> None:
    client = mock.Mock()
    client.get_data.return_value = response

    res = _directory(client).search_by_external_id('amy "the" cabble*')

    assert isinstance(res, expected)
    client.get_data.assert_called_once_with(
        "/users",
        cql_query='externalSystemId=="amy \\"the\\" cabble\\*"',
    )


@parametrize(
    "source_type,query",
    [
        ("t", 'externalSystemId=="t_*" and active=="true"'),
        (None, 'externalSystemId="" and active=="true"'),
    ],
)
def test_search_active(source_type: str | None, query: str) -> None:
    client = mock.Mock()
    client.iter_data.return_value = iter([_USER])

    res = _directory(client).search_active(source_type)

    assert [u.id for u in res] == [_USER["id"]]
    client.iter_data.assert_called_once_with("/users", key="users", cql_query=query)


class RequestErrorCases:
    def case_http(self) -> Exception:
        return httpx.ConnectError("connection refused")

    def case_timeout(self) -> Exception:
        return TimeoutError("timed out")

    def case_not_found(self) -> Exception:
        return ItemNotFoundError("Item not found")


@parametrize_with_cases("error", cases=RequestErrorCases)
def test_request_errors_are_wrapped(error: Exception) -> None:
    client = mock.Mock()
    client.get_data.side_effect = error
    client.iter_data.side_effect = error
    client.post_data.side_effect = error
    client.put_data.side_effect = error
    uut = _directory(client)

    with pytest.raises(DirectoryError):
        uut.search_by_external_id("amy_cabble")
    with pytest.raises(DirectoryError):
        uut.search_active("t")
    with pytest.raises(DirectoryError):
        uut.list_address_types()
    with pytest.raises(DirectoryError):
        uut.create_user({"username": "amy_cabble"})
    with pytest.raises(DirectoryError):
        uut.update_user({"id": "a", "username": "amy_cabble"})


def test_create_user() -> None:
    client = mock.Mock()

    _directory(client).create_user({"username": "amy_cabble"})

    client.post_data.assert_called_once_with(
        "/users",
        payload={"username": "amy_cabble"},
    )


def test_deactivate_user() -> None:
    client = mock.Mock()

    _directory(client).deactivate_user(parse_user(_USER))

    client.put_data.assert_called_once_with(
        f"/users/{_USER['id']}",
        payload=_USER | {"active": False},
    )


def _tenant(
    existing: list[dict[str, typing.Any]],
    active: list[dict[str, typing.Any]] | None = None,
) -> mock.Mock:
    catalogs: dict[str, list[dict[str, typing.Any]]] = {
        "/addresstypes": [{"id": "home-id", "addressType": "Home"}],
        "/groups": [{"id": "staff-id", "group": "staff"}],
        "/users": active or [],
    }

    def search(_: str, cql_query: str) -> dict[str, typing.Any]:
        users = [u for u in existing if f'"{u["externalSystemId"]}"' in cql_query]
        return {"users": users, "totalRecords": len(users)}

    client = mock.Mock()
    client.iter_data.side_effect = lambda endpoint, **_: iter(catalogs[endpoint])
    client.get_data.side_effect = search
    return client


def _record(ext_id: str) -> IncomingUserRecord:
    return IncomingUserRecord.from_json(
        {
            "externalSystemId": ext_id,
            "username": ext_id,
            "patronGroup": "staff",
            "personal": {"lastName": ext_id},
        },
    )


def test_user_removed_before_update() -> None:
    client = _tenant([_USER | {"externalSystemId": "user_update"}])
    client.put_data.side_effect = ItemNotFoundError("Item not found")

    res = UserImporter(_directory(client)).submit(
        ImportBatch(
            records=(_record("user_update"), _record("amy_cabble")),
            total_records=2,
        ),
    )

    assert res.created_records == 1
    assert res.failed_records == 1
    assert [u.external_system_id for u in res.failed_users] == ["user_update"]
    client.post_data.assert_called_once()


def test_user_removed_before_deactivation() -> None:
    client = _tenant([], active=[_USER])
    client.put_data.side_effect = ItemNotFoundError("Item not found")

    res = UserImporter(_directory(client)).submit(
        ImportBatch(
            records=(_record("amy_cabble"),),
            total_records=1,
            deactivate_missing_users=True,
            source_type="t",
        ),
    )

    assert res.ok
    assert res.created_records == 1
    assert res.message == "Deactivated missing users."
    client.put_data.assert_called_once()


def test_requests_are_made_one_at_a_time() -> None:
    in_flight = 0
    most = 0
    counter = threading.Lock()

    def tracked(ret: typing.Any) -> typing.Callable[..., typing.Any]:  # noqa: ANN401
        def call(*args: typing.Any, **kwargs: typing.Any) -> typing.Any:  # noqa: ANN401
            nonlocal in_flight, most
            with counter:
                in_flight += 1
                most = max(most, in_flight)
            time.sleep(0.005)
            with counter:
                in_flight -= 1
            return ret(*args, **kwargs)

        return call

    client = _tenant([])
    client.get_data.side_effect = tracked(client.get_data.side_effect)
    client.iter_data.side_effect = tracked(client.iter_data.side_effect)
    client.post_data.side_effect = tracked(lambda *_, **__: None)
    records = tuple(_record(f"user_{i}") for i in range(12))

    res = UserImporter(_directory(client), max_concurrency=4).submit(
        ImportBatch(records=records, total_records=len(records)),
    )

    assert res.created_records == 12
    assert client.post_data.call_count == 12
    assert most == 1


class HealthCases:
    def case_ok(self) -> tuple[typing.Any, str | None]:
        return (["OK"], None)

    def case_unexpected(self) -> tuple[typing.Any, str | None]:
        return ({"status": "DOWN"}, "Unexpected healthcheck response {'status': 'DOWN'}")


@mock.patch("folio_user_reconciler.folio.FolioBaseClient")
@parametrize_with_cases("health,expected", cases=HealthCases)
def test_folio_test(
    base_client_mock: mock.Mock,
    health: typing.Any,
    expected: str | None,
) -> None:
    import folio_user_reconciler.folio as uut

    client = base_client_mock.return_value.__enter__.return_value
    client.get_data.return_value = health
    options = mock.Mock(
        folio_url="https://folio.org",
        folio_tenant="tenant",
        folio_username="user",
        folio_password="pass",
    )

    assert uut.Folio(options).test() == expected
    base_client_mock.assert_called_once_with(
        "https://folio.org",
        "tenant",
        "user",
        "pass",
    )


@mock.patch("folio_user_reconciler.folio.FolioBaseClient")
def test_folio_test_connection_error(base_client_mock: mock.Mock) -> None:
    import folio_user_reconciler.folio as uut

    base_client_mock.side_effect = httpx.ConnectError("connection refused")

    assert uut.Folio(mock.Mock()).test() == "connection refused"
