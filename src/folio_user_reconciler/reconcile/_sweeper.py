"""Deactivates FOLIO users that are missing from an import."""

import logging
from collections.abc import Set

from ._directory import Directory
from ._models import (
    ERROR_MESSAGE,
    FAILED_TO_IMPORT_USERS,
    FAILED_TO_PROCESS_USER_SEARCH_RESULT,
    DeactivationOutcome,
)
from .errors import DirectoryError

log = logging.getLogger(__name__)


class DeactivationSweeper:
    """Finds and deactivates active users which weren't part of the batch."""

    def __init__(self, directory: Directory) -> None:
        """Initializes a new instance of DeactivationSweeper."""
        self._directory = directory

    def sweep(
        self,
        source_type: str | None,
        touched_ids: Set[str],
    ) -> DeactivationOutcome:
        """Deactivates users of source_type whose externalSystemId isn't touched.

        touched_ids are the externalSystemIds as they are stored in FOLIO.
        A failure to deactivate one user doesn't stop the others.
        """
        try:
            active = self._directory.search_active(source_type)
        except DirectoryError as e:
            log.error("Searching for users to deactivate failed: %s", e)  # noqa: TRY400
            return DeactivationOutcome(
                ran=False,
                error=f"{FAILED_TO_IMPORT_USERS}{ERROR_MESSAGE}"
                f"{FAILED_TO_PROCESS_USER_SEARCH_RESULT}",
            )

        missing = [u for u in active if u.external_system_id not in touched_ids]
        log.info("Deactivating %d of %d active users", len(missing), len(active))

        deactivated: list[str] = []
        failed: list[str] = []
        for u in missing:
            try:
                self._directory.deactivate_user(u)
            except DirectoryError as e:
                log.warning(
                    "Deactivating %s (%s) failed: %s",
                    u.external_system_id,
                    u.id,
                    e,
                )
                failed.append(u.id)
                continue

            log.debug("Deactivated %s (%s)", u.external_system_id, u.id)
            deactivated.append(u.id)

        return DeactivationOutcome(
            ran=True,
            deactivated=tuple(deactivated),
            failed=tuple(failed),
        )
