"""Command for importing user data into FOLIO."""

import logging

from folio_user_reconciler.data import InputData
from folio_user_reconciler.folio import Folio
from folio_user_reconciler.reconcile import (
    ImportBatch,
    RequestValidationError,
    UserImporter,
)

from ._models import ImportOptions, ImportResults
from ._transform import clean_nones, transform_batch

log = logging.getLogger(__name__)


def run(options: ImportOptions) -> ImportResults:
    """Import users into FOLIO."""
    batches = list(InputData(options).batch(options.batch_size))
    if options.deactivate_missing_users and len(batches) > 1:
        # each batch would deactivate the users of every other batch
        too_many = (
            "Deactivating missing users requires all users to be in a single batch, "
            f"increase the batch size to at least {sum(t for (t, _) in batches)}"
        )
        raise ValueError(too_many)

    import_results = ImportResults()
    with Folio(options).directory() as directory:
        importer = UserImporter(directory, options.max_concurrency)
        for n, (total, b) in enumerate(batches):
            users = [clean_nones(u) for u in transform_batch(b).collect().to_dicts()]
            req = {
                "users": users,
                "totalRecords": total,
                "deactivateMissingUsers": options.deactivate_missing_users,
                "updateOnlyPresentFields": not options.update_all_fields,
            }
            if options.source_type:
                req["sourceType"] = options.source_type

            log.info("Importing batch %d of %d users", n, total)
            try:
                report = importer.submit(ImportBatch.from_json(req))
            except RequestValidationError as e:
                log.error("Batch %d was rejected: %s", n, e)  # noqa: TRY400
                import_results.rejected_records += total
                import_results.errors.append(str(e))
                continue

            import_results.add(report)

    return import_results


__all__ = ["ImportOptions", "ImportResults", "run"]
