"""Reading and validating the csv files users are imported from."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pandera.polars as pla
import polars as pl
import polars.selectors as cs

from .schemas import UserImportSchema

log = logging.getLogger(__name__)

# mostly numeric in practice but must never be treated as numbers
_IDENTIFIERS = ["externalSystemId", "username", "barcode"]


@dataclass(frozen=True)
class InputDataOptions(Protocol):
    """Options used for reading input data."""

    data_location: Path | dict[str, Path]


def _read(path: Path, *, ignore_errors: bool = False) -> pl.DataFrame:
    return pl.read_csv(
        path,
        comment_prefix="#",
        try_parse_dates=True,
        ignore_errors=ignore_errors,
    ).with_columns(cs.by_name(_IDENTIFIERS, require_all=False).cast(pl.String))


class InputData:
    """The users to import, spread over one or more csv files."""

    def __init__(self, options: InputDataOptions) -> None:
        """Initializes a new instance of InputData."""
        self._options = options

    @property
    def _locations(self) -> dict[str, Path]:
        if isinstance(self._options.data_location, Path):
            return {"data": self._options.data_location}
        return self._options.data_location

    def test(
        self,
    ) -> tuple[
        dict[str, pla.errors.SchemaErrors] | None,
        dict[str, pl.exceptions.PolarsError] | None,
    ]:
        """Reads and validates every file without stopping at the first problem.

        :returns the schema errors and read errors by file name, if there are any
        """
        schema_errors: dict[str, pla.errors.SchemaErrors] = {}
        read_errors: dict[str, pl.exceptions.PolarsError] = {}

        for n, p in self._locations.items():
            try:
                _read(p)
            except pl.exceptions.PolarsError as e:
                read_errors[n] = e

            # keep going with whatever could be read to find schema errors too
            try:
                data = _read(p, ignore_errors=True)
            except pl.exceptions.PolarsError as e:
                read_errors.setdefault(n, e)
                continue

            try:
                UserImportSchema.validate(data, lazy=True)
            except pla.errors.SchemaError as se:
                schema_errors[n] = pla.errors.SchemaErrors(UserImportSchema, [se], data)
            except pla.errors.SchemaErrors as se:
                schema_errors[n] = se

        log.debug(
            "Checked %d files, %d unreadable, %d invalid",
            len(self._locations),
            len(read_errors),
            len(schema_errors),
        )
        return (schema_errors or None, read_errors or None)

    def batch(self, batch_size: int) -> Iterator[tuple[int, pl.LazyFrame]]:
        """Reads every file and splits the users into batches of at most batch_size.

        :returns the number of users in each batch along with the batch
        """
        data = pl.concat(
            [_read(p) for p in self._locations.values()],
            how="diagonal_relaxed",
        )
        log.info("Read %d users from %d files", data.height, len(self._locations))

        for b in data.iter_slices(n_rows=batch_size):
            yield (b.height, b.lazy())
