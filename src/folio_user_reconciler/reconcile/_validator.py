"""Validates import requests before anything is sent to FOLIO."""

import typing

from ._models import ImportBatch, IncomingUserRecord
from .errors import RequestValidationError


def _is_blank(val: str | None) -> bool:
    return val is None or len(str(val).strip()) == 0


class RecordValidator:
    """Rejects records which are missing their identifying fields."""

    def _errors(
        self,
        record: IncomingUserRecord,
        prefix: str = "",
    ) -> list[dict[str, typing.Any]]:
        errors = []
        if _is_blank(record.external_system_id):
            errors.append(
                {"key": f"{prefix}externalSystemId", "value": record.external_system_id},
            )
        if _is_blank(record.username):
            errors.append({"key": f"{prefix}username", "value": record.username})
        return errors

    def validate(self, record: IncomingUserRecord) -> None:
        """Validates a single record.

        :raises RequestValidationError if externalSystemId or username is missing
        """
        errors = self._errors(record)
        if len(errors) > 0:
            raise RequestValidationError(errors)

    def validate_batch(self, batch: ImportBatch) -> None:
        """Validates every record and the shape of the batch.

        All problems are collected before raising.

        :raises RequestValidationError if anything about the batch is invalid
        """
        errors: list[dict[str, typing.Any]] = []
        if batch.total_records != len(batch.records):
            errors.append({"key": "totalRecords", "value": batch.total_records})

        for i, r in enumerate(batch.records):
            errors.extend(self._errors(r, f"users[{i}]."))

        if len(errors) > 0:
            raise RequestValidationError(errors)
