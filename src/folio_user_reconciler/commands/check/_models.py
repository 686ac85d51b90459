"""Models for check command."""

import typing
from dataclasses import dataclass
from pathlib import Path

import pandera.polars as pla
import polars as pl


@dataclass(frozen=True)
class CheckOptions:
    """Options used for checking an import's viability."""

    folio_url: str
    folio_tenant: str
    folio_username: str
    folio_password: str

    data_location: Path | dict[str, Path]


@dataclass
class CheckResults:
    """Everything standing in the way of an import."""

    folio_error: str | None = None
    """Why FOLIO couldn't be reached or isn't healthy."""
    schema_errors: dict[str, pla.errors.SchemaErrors] | None = None
    """Schema violations by file name."""
    read_errors: dict[str, pl.exceptions.PolarsError] | None = None
    """Files that aren't valid csvs by file name."""

    @property
    def folio_ok(self) -> bool:
        return self.folio_error is None

    @property
    def schema_ok(self) -> bool:
        return self.schema_errors is None

    @property
    def read_ok(self) -> bool:
        return self.read_errors is None

    @property
    def ok(self) -> bool:
        """Can the import be started?"""
        return self.folio_ok and self.schema_ok and self.read_ok

    def write_results(self, out: typing.TextIO) -> None:
        """Writes a human readable summary of the check."""
        out.write(f"FOLIO: {'ok' if self.folio_ok else self.folio_error}\n")
        for name, e in (self.read_errors or {}).items():
            out.write(f"{name}: could not be read\n{e}\n")
        for name, se in (self.schema_errors or {}).items():
            out.write(f"{name}: is not valid\n{se}\n")
        if self.ok:
            out.write("Ready to import\n")
