"""Decides whether each incoming record creates or updates a FOLIO user."""

import logging
import typing

from ._addresses import AddressMerger
from ._directory import Directory
from ._matcher import Found, SearchFailed, UserMatcher
from ._models import (
    ERROR_MESSAGE,
    FAILED_TO_CREATE_NEW_USER_WITH_EXTERNAL_SYSTEM_ID,
    FAILED_TO_UPDATE_USER_WITH_EXTERNAL_SYSTEM_ID,
    NO_SUCH_PATRON_GROUP,
    Created,
    DirectoryUser,
    Failed,
    IncomingUserRecord,
    RecordOutcome,
    ReferenceData,
    Updated,
)
from .errors import DirectoryError, RecordError

log = logging.getLogger(__name__)


def _overlay(
    existing: DirectoryUser,
    incoming: dict[str, typing.Any],
    addresses: list[dict[str, typing.Any]],
) -> dict[str, typing.Any]:
    user = dict(existing.raw) | incoming
    user["id"] = existing.id

    personal = dict(existing.raw.get("personal", {})) | incoming.get("personal", {})
    if len(addresses) > 0 or "addresses" in personal:
        personal["addresses"] = addresses
    if len(personal) > 0:
        user["personal"] = personal

    return user


class RecordReconciler:
    """Creates or updates the FOLIO user for a single validated record.

    Every failure is returned as a Failed outcome, nothing is raised.
    """

    def __init__(
        self,
        directory: Directory,
        reference: ReferenceData,
        source_type: str | None,
        update_only_present_fields: bool,  # noqa: FBT001
    ) -> None:
        """Initializes a new instance of RecordReconciler."""
        self._directory = directory
        self._reference = reference
        self._source_type = source_type
        self._update_only_present_fields = update_only_present_fields
        self._matcher = UserMatcher(directory)
        self._merger = AddressMerger(reference.address_types)

    def reconcile(self, record: IncomingUserRecord) -> RecordOutcome:
        """Reconciles one record with FOLIO."""
        ext_id = str(record.external_system_id)
        username = str(record.username)

        match = self._matcher.find(record.matching_id(self._source_type))
        if isinstance(match, SearchFailed):
            return Failed(ext_id, username, match.reason, "search")

        patron_group_id = None
        if record.patron_group is not None:
            patron_group_id = self._reference.patron_groups.get(record.patron_group)
            if patron_group_id is None:
                log.warning("%s has unknown patron group %s", ext_id, record.patron_group)
                return Failed(
                    ext_id,
                    username,
                    f"{NO_SUCH_PATRON_GROUP}{record.patron_group}",
                    "resolve",
                )

        if isinstance(match, Found):
            return self._update(record, match.user, patron_group_id)
        return self._create(record, patron_group_id)

    def _create(
        self,
        record: IncomingUserRecord,
        patron_group_id: str | None,
    ) -> RecordOutcome:
        ext_id = str(record.external_system_id)
        username = str(record.username)
        failed = f"{FAILED_TO_CREATE_NEW_USER_WITH_EXTERNAL_SYSTEM_ID}{ext_id}"

        try:
            addresses = self._merger.resolve(record.addresses)
        except RecordError as e:
            return Failed(ext_id, username, f"{failed}{ERROR_MESSAGE}{e.reason}", e.stage)

        user = record.to_json(
            self._source_type,
            patron_group_id,
            addresses,
            self._reference.contact_types,
        )
        try:
            self._directory.create_user(user)
        except DirectoryError as e:
            log.warning("Creating %s failed: %s", ext_id, e)
            return Failed(ext_id, username, failed, "create")

        log.info("Created %s", ext_id)
        return Created(ext_id, username)

    def _update(
        self,
        record: IncomingUserRecord,
        existing: DirectoryUser,
        patron_group_id: str | None,
    ) -> RecordOutcome:
        ext_id = str(record.external_system_id)
        username = str(record.username)
        failed = f"{FAILED_TO_UPDATE_USER_WITH_EXTERNAL_SYSTEM_ID}{ext_id}"

        try:
            addresses = self._merger.merge(
                existing.addresses,
                record.addresses,
                self._update_only_present_fields,
            )
        except RecordError as e:
            return Failed(ext_id, username, f"{failed}{ERROR_MESSAGE}{e.reason}", e.stage)

        incoming = record.to_json(
            self._source_type,
            patron_group_id,
            [],
            self._reference.contact_types,
        )
        user = _overlay(existing, incoming, addresses)
        try:
            self._directory.update_user(user)
        except DirectoryError as e:
            log.warning("Updating %s (%s) failed: %s", ext_id, existing.id, e)
            return Failed(ext_id, username, failed, "update")

        log.info("Updated %s (%s)", ext_id, existing.id)
        return Updated(ext_id, username)
