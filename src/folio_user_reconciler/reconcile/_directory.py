"""The user directory the reconciler reads from and writes to."""

import typing
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from ._models import DirectoryUser


@dataclass(frozen=True)
class SingleMatch:
    user: DirectoryUser


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class MultipleMatches:
    count: int


@dataclass(frozen=True)
class Unparseable:
    detail: str


SearchResult = SingleMatch | NoMatch | MultipleMatches | Unparseable


class Directory(Protocol):
    """The remote user directory.

    Every method raises DirectoryError when the request to the directory fails.
    """

    def list_address_types(self) -> Mapping[str, str]:
        """Lists all address types as name -> id."""
        ...

    def list_patron_groups(self) -> Mapping[str, str]:
        """Lists all patron groups as name -> id."""
        ...

    def search_by_external_id(self, external_system_id: str) -> SearchResult:
        """Finds the user with the given externalSystemId."""
        ...

    def search_active(self, source_type: str | None) -> list[DirectoryUser]:
        """Lists active users imported from source_type (or any source if None)."""
        ...

    def create_user(self, user: dict[str, typing.Any]) -> None: ...

    def update_user(self, user: dict[str, typing.Any]) -> None: ...

    def deactivate_user(self, user: DirectoryUser) -> None: ...


def parse_user(obj: typing.Any) -> DirectoryUser:  # noqa: ANN401
    """Reads a user from a FOLIO /users response.

    :raises ValueError if obj does not look like a FOLIO user
    """
    if not isinstance(obj, Mapping):
        not_obj = f"Expected a user object but got {type(obj).__name__}"
        raise ValueError(not_obj)  # noqa: TRY004

    user_id = obj.get("id")
    if not isinstance(user_id, str) or len(user_id) == 0:
        no_id = "User has no id"
        raise ValueError(no_id)

    personal = obj.get("personal", {})
    if not isinstance(personal, Mapping):
        bad_personal = f"User {user_id} has a malformed personal block"
        raise ValueError(bad_personal)  # noqa: TRY004

    addresses = personal.get("addresses", [])
    if not isinstance(addresses, list) or not all(
        isinstance(a, Mapping) for a in addresses
    ):
        bad_addresses = f"User {user_id} has malformed addresses"
        raise ValueError(bad_addresses)

    active = obj.get("active", True)
    if not isinstance(active, bool):
        bad_active = f"User {user_id} has a non boolean active flag"
        raise ValueError(bad_active)  # noqa: TRY004

    return DirectoryUser(
        id=user_id,
        external_system_id=obj.get("externalSystemId"),
        username=obj.get("username"),
        active=active,
        patron_group=obj.get("patronGroup"),
        addresses=tuple(addresses),
        raw=obj,
    )


def classify_search(res: typing.Any) -> SearchResult:  # noqa: ANN401
    """Classifies a /users search response for a single externalSystemId."""
    if not isinstance(res, Mapping) or not isinstance(res.get("users"), list):
        return Unparseable("Expected a users collection")

    users = res["users"]
    if len(users) == 0:
        return NoMatch()
    if len(users) > 1:
        return MultipleMatches(len(users))

    try:
        return SingleMatch(parse_user(users[0]))
    except ValueError as e:
        return Unparseable(str(e))
