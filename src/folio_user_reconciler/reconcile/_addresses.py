"""Merges incoming addresses into a user's existing addresses."""

import typing
from collections.abc import Mapping, Sequence

from ._models import NO_SUCH_ADDRESS_TYPE, Address
from .errors import RecordError

ADDRESS_TYPE_MISSING = "Address is missing an address type."


class AddressMerger:
    """Computes a user's addresses after an import.

    Addresses have no identity of their own, they are keyed by address type.
    Incoming addresses are applied in the order they were submitted so the last
    address of a type wins.
    """

    def __init__(self, address_types: Mapping[str, str]) -> None:
        """Initializes a new instance of AddressMerger."""
        self._address_types = address_types

    def resolve(self, incoming: Sequence[Address]) -> list[dict[str, typing.Any]]:
        """Converts addresses to FOLIO's representation without merging them.

        :raises RecordError if an address type can't be found
        """
        resolved = []
        for a in incoming:
            if a.address_type is None:
                raise RecordError(ADDRESS_TYPE_MISSING, "resolve")
            if a.address_type not in self._address_types:
                raise RecordError(f"{NO_SUCH_ADDRESS_TYPE}{a.address_type}", "resolve")
            resolved.append(a.to_json(self._address_types[a.address_type]))

        return resolved

    def merge(
        self,
        existing: Sequence[Mapping[str, typing.Any]],
        incoming: Sequence[Address],
        update_only_present_fields: bool,  # noqa: FBT001
    ) -> list[dict[str, typing.Any]]:
        """Merges incoming addresses with the existing addresses.

        When update_only_present_fields is False the incoming addresses replace
        the existing ones entirely. Otherwise each incoming address overwrites the
        existing address of the same type, or is added if there isn't one.

        :raises RecordError if an address type can't be found
        """
        resolved = self.resolve(incoming)
        if not update_only_present_fields:
            return _upsert([], resolved)

        if len(resolved) == 0:
            return [dict(a) for a in existing]

        return _upsert([dict(a) for a in existing], resolved)


def _upsert(
    merged: list[dict[str, typing.Any]],
    resolved: list[dict[str, typing.Any]],
) -> list[dict[str, typing.Any]]:
    by_type: dict[typing.Any, int] = {}
    for i, a in enumerate(merged):
        by_type.setdefault(a.get("addressTypeId"), i)

    for a in resolved:
        type_id = a["addressTypeId"]
        if type_id in by_type:
            i = by_type[type_id]
            merged[i] = merged[i] | a
        else:
            by_type[type_id] = len(merged)
            merged.append(a)

    return merged
