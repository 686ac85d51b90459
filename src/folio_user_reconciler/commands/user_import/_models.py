"""Models for import command."""

import typing
from dataclasses import dataclass, field
from pathlib import Path

from folio_user_reconciler.reconcile import BatchReport, FailedUser


@dataclass(frozen=True)
class ImportOptions:
    """Options used for importing users into FOLIO."""

    folio_url: str
    folio_tenant: str
    folio_username: str
    folio_password: str

    data_location: Path | dict[str, Path]

    batch_size: int
    max_concurrency: int

    deactivate_missing_users: bool
    update_all_fields: bool
    source_type: str | None


@dataclass
class ImportResults:
    """Results of importing users into FOLIO."""

    total_records: int = 0
    created_records: int = 0
    updated_records: int = 0
    failed_records: int = 0

    rejected_records: int = 0
    """Records in batches which FOLIO was never asked to import."""

    failed_users: list[FailedUser] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add(self, report: BatchReport) -> None:
        """Adds the report for one batch to the overall results."""
        self.total_records += report.total_records
        self.created_records += report.created_records
        self.updated_records += report.updated_records
        self.failed_records += report.failed_records
        self.failed_users.extend(report.failed_users)
        self.messages.append(report.message)
        if report.error is not None:
            self.errors.append(report.error)

    def write_results(self, out: typing.TextIO) -> None:
        """Writes a human readable summary of the import."""
        out.write(
            f"Total: {self.total_records} "
            f"Created: {self.created_records} "
            f"Updated: {self.updated_records} "
            f"Failed: {self.failed_records} "
            f"Rejected: {self.rejected_records}\n",
        )
        for m in dict.fromkeys(self.messages):
            out.write(f"{m}\n")
        for e in self.errors:
            out.write(f"Error: {e}\n")
        for u in self.failed_users:
            out.write(f"{u.external_system_id} ({u.username}): {u.error_message}\n")
