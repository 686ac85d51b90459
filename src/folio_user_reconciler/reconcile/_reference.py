"""Resolves the reference data needed to import users."""

import logging
from types import MappingProxyType

from ._directory import Directory
from ._models import (
    FAILED_TO_LIST_ADDRESS_TYPES,
    FAILED_TO_LIST_PATRON_GROUPS,
    ReferenceData,
)
from .errors import BatchFatalError, DirectoryError

log = logging.getLogger(__name__)


class ReferenceDataResolver:
    """Fetches the address type and patron group catalogs once per batch."""

    def __init__(self, directory: Directory) -> None:
        """Initializes a new instance of ReferenceDataResolver."""
        self._directory = directory

    def resolve(self) -> ReferenceData:
        """Builds the name to id lookups.

        :raises BatchFatalError if either catalog cannot be listed
        """
        try:
            address_types = dict(self._directory.list_address_types())
        except DirectoryError:
            log.exception(FAILED_TO_LIST_ADDRESS_TYPES)
            raise BatchFatalError(FAILED_TO_LIST_ADDRESS_TYPES) from None

        try:
            patron_groups = dict(self._directory.list_patron_groups())
        except DirectoryError:
            log.exception(FAILED_TO_LIST_PATRON_GROUPS)
            raise BatchFatalError(FAILED_TO_LIST_PATRON_GROUPS) from None

        log.debug(
            "Resolved %d address types and %d patron groups",
            len(address_types),
            len(patron_groups),
        )
        return ReferenceData(
            MappingProxyType(address_types),
            MappingProxyType(patron_groups),
        )
