import threading
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field

import pytest

from folio_user_reconciler.reconcile import (
    DirectoryError,
    DirectoryUser,
    SearchResult,
    classify_search,
    parse_user,
)


@dataclass
class FakeDirectory:
    """An in memory user directory that records what was asked of it."""

    address_types: dict[str, str] = field(
        default_factory=lambda: {"Home": "home-id", "Work": "work-id"},
    )
    patron_groups: dict[str, str] = field(
        default_factory=lambda: {"undergrad": "undergrad-id", "staff": "staff-id"},
    )
    users: list[dict[str, typing.Any]] = field(default_factory=list)

    fail_address_types: bool = False
    fail_patron_groups: bool = False
    fail_search: set[str] = field(default_factory=set)
    malformed_search: set[str] = field(default_factory=set)
    fail_create: set[str] = field(default_factory=set)
    fail_update: set[str] = field(default_factory=set)
    fail_search_active: bool = False
    fail_deactivate: set[str] = field(default_factory=set)

    calls: list[str] = field(default_factory=list)
    created: list[dict[str, typing.Any]] = field(default_factory=list)
    updated: list[dict[str, typing.Any]] = field(default_factory=list)
    deactivated: list[str] = field(default_factory=list)

    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _call(self, name: str) -> None:
        with self._lock:
            self.calls.append(name)

    def list_address_types(self) -> Mapping[str, str]:
        self._call("list_address_types")
        if self.fail_address_types:
            failed = "address types are down"
            raise DirectoryError(failed)
        return self.address_types

    def list_patron_groups(self) -> Mapping[str, str]:
        self._call("list_patron_groups")
        if self.fail_patron_groups:
            failed = "patron groups are down"
            raise DirectoryError(failed)
        return self.patron_groups

    def search_by_external_id(self, external_system_id: str) -> SearchResult:
        self._call("search_by_external_id")
        if external_system_id in self.fail_search:
            failed = "search is down"
            raise DirectoryError(failed)
        if external_system_id in self.malformed_search:
            return classify_search({"users": [{"username": external_system_id}]})
        return classify_search(
            {
                "users": [
                    u
                    for u in self.users
                    if u.get("externalSystemId") == external_system_id
                ],
            },
        )

    def search_active(self, source_type: str | None) -> list[DirectoryUser]:
        self._call("search_active")
        if self.fail_search_active:
            failed = "search is down"
            raise DirectoryError(failed)
        prefix = f"{source_type}_" if source_type else ""
        return [
            parse_user(u)
            for u in self.users
            if u.get("active", True)
            and str(u.get("externalSystemId", "")).startswith(prefix)
        ]

    def create_user(self, user: dict[str, typing.Any]) -> None:
        self._call("create_user")
        if user["externalSystemId"] in self.fail_create:
            failed = "create is down"
            raise DirectoryError(failed)
        with self._lock:
            self.created.append(user)

    def update_user(self, user: dict[str, typing.Any]) -> None:
        self._call("update_user")
        if user["externalSystemId"] in self.fail_update:
            failed = "update is down"
            raise DirectoryError(failed)
        with self._lock:
            self.updated.append(user)

    def deactivate_user(self, user: DirectoryUser) -> None:
        self._call("deactivate_user")
        if user.id in self.fail_deactivate:
            failed = "deactivate is down"
            raise DirectoryError(failed)
        with self._lock:
            self.deactivated.append(user.id)


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()
