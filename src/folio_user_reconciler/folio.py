"""FOLIO connection related utils for managing users."""

import threading
import typing
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

import httpx
from pyfolioclient import (
    BadRequestError,
    FolioBaseClient,
    ItemNotFoundError,
    UnprocessableContentError,
)

from folio_user_reconciler.reconcile import (
    DirectoryError,
    DirectoryUser,
    SearchResult,
    classify_search,
    parse_user,
)

_REQUEST_ERRORS = (
    httpx.HTTPError,
    ConnectionError,
    TimeoutError,
    RuntimeError,
    BadRequestError,
    ItemNotFoundError,
    UnprocessableContentError,
)


@dataclass(frozen=True)
class FolioOptions(Protocol):
    """Options used for connecting to FOLIO."""

    folio_url: str
    folio_tenant: str
    folio_username: str
    folio_password: str


class Folio:
    """The FOLIO connection factory."""

    def __init__(self, options: FolioOptions) -> None:
        """Initializes a new instance of FOLIO."""
        self._options = options

    @contextmanager
    def connect(self) -> Iterator[FolioBaseClient]:
        """Connects to FOLIO and returns a pyfolioclient."""
        with FolioBaseClient(
            self._options.folio_url,
            self._options.folio_tenant,
            self._options.folio_username,
            self._options.folio_password,
        ) as c:
            yield c

    @contextmanager
    def directory(self) -> Iterator["FolioDirectory"]:
        """Connects to FOLIO and returns its user directory."""
        with self.connect() as c:
            yield FolioDirectory(c)

    def test(self) -> str | None:
        """Test that connection to FOLIO is ok.

        :returns the error connecting to FOLIO, if there is one
        """
        try:
            with self.connect() as folio:
                res = folio.get_data("/admin/health")
        except _REQUEST_ERRORS as e:
            return str(e)

        if isinstance(res, list) and len(res) > 0 and res[0] == "OK":
            return None
        return f"Unexpected healthcheck response {res}"


def _cql(val: str) -> str:
    # https://dev.folio.org/faqs/explain-cql/
    for c in ["\\", '"', "*", "?", "^"]:
        val = val.replace(c, "\\" + c)
    return val


class FolioDirectory:
    """The user directory of a FOLIO tenant.

    Safe to share between threads, requests are made one at a time because
    FolioBaseClient refreshes its token without any locking.
    """

    def __init__(self, client: FolioBaseClient) -> None:
        """Initializes a new instance of FolioDirectory."""
        self._client = client
        self._lock = threading.Lock()

    def _catalog(self, endpoint: str, key: str, name: str) -> Mapping[str, str]:
        try:
            with self._lock:
                return {
                    str(item[name]): str(item["id"])
                    for item in self._client.iter_data(endpoint, key=key)
                }
        except (*_REQUEST_ERRORS, KeyError, TypeError, ValueError) as e:
            failed = f"Listing {endpoint} failed: {e}"
            raise DirectoryError(failed) from e

    def list_address_types(self) -> Mapping[str, str]:
        """Lists all address types as name -> id."""
        return self._catalog("/addresstypes", "addressTypes", "addressType")

    def list_patron_groups(self) -> Mapping[str, str]:
        """Lists all patron groups as name -> id."""
        return self._catalog("/groups", "usergroups", "group")

    def search_by_external_id(self, external_system_id: str) -> SearchResult:
        """Finds the user with the given externalSystemId."""
        try:
            with self._lock:
                res = self._client.get_data(
                    "/users",
                    cql_query=f'externalSystemId=="{_cql(external_system_id)}"',
                )
        except (*_REQUEST_ERRORS, ValueError) as e:
            failed = f"Searching /users failed: {e}"
            raise DirectoryError(failed) from e

        return classify_search(res)

    def search_active(self, source_type: str | None) -> list[DirectoryUser]:
        """Lists active users imported from source_type (or any source if None)."""
        ext_id = (
            f'externalSystemId=="{_cql(source_type)}_*"'
            if source_type
            else 'externalSystemId=""'
        )
        try:
            with self._lock:
                return [
                    parse_user(u)
                    for u in self._client.iter_data(
                        "/users",
                        key="users",
                        cql_query=f'{ext_id} and active=="true"',
                    )
                ]
        except (*_REQUEST_ERRORS, KeyError, TypeError, ValueError) as e:
            failed = f"Searching active /users failed: {e}"
            raise DirectoryError(failed) from e

    def create_user(self, user: dict[str, typing.Any]) -> None:
        try:
            with self._lock:
                self._client.post_data("/users", payload=user)
        except _REQUEST_ERRORS as e:
            failed = f"Creating user failed: {e}"
            raise DirectoryError(failed) from e

    def update_user(self, user: dict[str, typing.Any]) -> None:
        try:
            with self._lock:
                self._client.put_data(f"/users/{user['id']}", payload=user)
        except _REQUEST_ERRORS as e:
            failed = f"Updating user {user['id']} failed: {e}"
            raise DirectoryError(failed) from e

    def deactivate_user(self, user: DirectoryUser) -> None:
        self.update_user(dict(user.raw) | {"active": False})
