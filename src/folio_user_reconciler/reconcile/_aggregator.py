"""Summarizes the outcomes of an import."""

from collections.abc import Sequence

from ._models import (
    DEACTIVATED_MISSING_USERS,
    FAILED_TO_IMPORT_USERS,
    NO_USERS_TO_IMPORT,
    USER_DEACTIVATION_SKIPPED,
    USERS_WERE_IMPORTED_SUCCESSFULLY,
    BatchReport,
    Created,
    DeactivationOutcome,
    Failed,
    FailedUser,
    IncomingUserRecord,
    RecordOutcome,
    Updated,
)


class BatchAggregator:
    """Folds record and deactivation outcomes into a BatchReport."""

    def empty(self) -> BatchReport:
        return BatchReport(NO_USERS_TO_IMPORT)

    def fatal(
        self,
        records: Sequence[IncomingUserRecord],
        error: str,
    ) -> BatchReport:
        """A report for a batch that failed before any record was processed."""
        return self.aggregate(
            [
                Failed(str(r.external_system_id), str(r.username), error)
                for r in records
            ],
            error=error,
        )

    def aggregate(
        self,
        outcomes: Sequence[RecordOutcome],
        deactivation: DeactivationOutcome | None = None,
        error: str | None = None,
    ) -> BatchReport:
        """Builds the report.

        error is a batch level failure; it takes precedence over a deactivation.
        """
        report = BatchReport(USERS_WERE_IMPORTED_SUCCESSFULLY)
        for o in outcomes:
            if isinstance(o, Created):
                report.created_records += 1
            elif isinstance(o, Updated):
                report.updated_records += 1
            elif isinstance(o, Failed):
                report.failed_records += 1
                report.failed_users.append(
                    FailedUser(o.external_system_id, o.username, o.reason),
                )
        report.total_records = len(outcomes)

        if error is None and deactivation is not None:
            error = deactivation.error

        if error is not None:
            report.message = FAILED_TO_IMPORT_USERS
            report.error = error
            report.ok = False
        elif deactivation is not None and deactivation.skipped:
            report.message = (
                f"{USERS_WERE_IMPORTED_SUCCESSFULLY} {USER_DEACTIVATION_SKIPPED}"
            )
        elif deactivation is not None and (
            len(deactivation.deactivated) > 0 or len(deactivation.failed) > 0
        ):
            report.message = DEACTIVATED_MISSING_USERS

        return report
