"""Reconciles batches of incoming users with the users already in FOLIO."""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from ._addresses import AddressMerger
from ._aggregator import BatchAggregator
from ._directory import (
    Directory,
    MultipleMatches,
    NoMatch,
    SearchResult,
    SingleMatch,
    Unparseable,
    classify_search,
    parse_user,
)
from ._matcher import Found, MatchResult, NotFound, SearchFailed, UserMatcher
from ._models import (
    Address,
    BatchReport,
    Created,
    DeactivationOutcome,
    DirectoryUser,
    Failed,
    FailedUser,
    ImportBatch,
    IncomingUserRecord,
    Personal,
    RecordOutcome,
    ReferenceData,
    Updated,
)
from ._reconciler import RecordReconciler
from ._reference import ReferenceDataResolver
from ._sweeper import DeactivationSweeper
from ._validator import RecordValidator
from .errors import BatchFatalError, DirectoryError, RecordError, RequestValidationError

log = logging.getLogger(__name__)


class UserImporter:
    """Imports batches of users into a user directory."""

    def __init__(
        self,
        directory: Directory,
        max_concurrency: int = 1,
        *,
        skip_sweep_after_create_failure: bool = True,
    ) -> None:
        """Initializes a new instance of UserImporter.

        :param max_concurrency the number of records reconciled at once
        :param skip_sweep_after_create_failure whether a user that could not be
            created prevents missing users from being deactivated
        """
        self._directory = directory
        self._max_concurrency = max(1, max_concurrency)
        self._skip_sweep_after_create_failure = skip_sweep_after_create_failure
        self._validator = RecordValidator()
        self._aggregator = BatchAggregator()

    def submit(self, batch: ImportBatch) -> BatchReport:
        """Imports a batch of users.

        Individual users can fail without failing the batch,
        check failed_records even when the report is ok.

        :raises RequestValidationError if the batch is malformed
        """
        self._validator.validate_batch(batch)
        if len(batch.records) == 0:
            return self._aggregator.empty()

        try:
            reference = ReferenceDataResolver(self._directory).resolve()
        except BatchFatalError as e:
            log.error("Import of %d users failed: %s", len(batch.records), e.error)  # noqa: TRY400
            return self._aggregator.fatal(batch.records, e.error)

        reconciler = RecordReconciler(
            self._directory,
            reference,
            batch.source_type,
            batch.update_only_present_fields,
        )
        outcomes = self._reconcile(reconciler, batch.records)

        deactivation = None
        if batch.deactivate_missing_users:
            deactivation = self._sweep(batch, outcomes)

        report = self._aggregator.aggregate(outcomes, deactivation)
        log.info(
            "%s created: %d updated: %d failed: %d",
            report.message,
            report.created_records,
            report.updated_records,
            report.failed_records,
        )
        return report

    def _reconcile(
        self,
        reconciler: RecordReconciler,
        records: Sequence[IncomingUserRecord],
    ) -> list[RecordOutcome]:
        if self._max_concurrency == 1:
            return [reconciler.reconcile(r) for r in records]

        with ThreadPoolExecutor(max_workers=self._max_concurrency) as pool:
            return list(pool.map(reconciler.reconcile, records))

    def _sweep(
        self,
        batch: ImportBatch,
        outcomes: Sequence[RecordOutcome],
    ) -> DeactivationOutcome:
        if self._skip_sweep_after_create_failure and any(
            isinstance(o, Failed) and o.stage == "create" for o in outcomes
        ):
            log.warning("Skipping deactivation because users failed to be created")
            return DeactivationOutcome(skipped=True)

        touched_ids = frozenset(r.matching_id(batch.source_type) for r in batch.records)
        return DeactivationSweeper(self._directory).sweep(batch.source_type, touched_ids)


__all__ = [
    "Address",
    "AddressMerger",
    "BatchAggregator",
    "BatchFatalError",
    "BatchReport",
    "Created",
    "DeactivationOutcome",
    "DeactivationSweeper",
    "Directory",
    "DirectoryError",
    "DirectoryUser",
    "Failed",
    "FailedUser",
    "Found",
    "ImportBatch",
    "IncomingUserRecord",
    "MatchResult",
    "MultipleMatches",
    "NoMatch",
    "NotFound",
    "Personal",
    "RecordError",
    "RecordOutcome",
    "RecordReconciler",
    "RecordValidator",
    "ReferenceData",
    "ReferenceDataResolver",
    "RequestValidationError",
    "SearchFailed",
    "SearchResult",
    "SingleMatch",
    "Unparseable",
    "Updated",
    "UserImporter",
    "UserMatcher",
    "classify_search",
    "parse_user",
]
