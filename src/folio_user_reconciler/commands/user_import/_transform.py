"""Transforms flat csv rows into the nested users FOLIO expects."""

import typing

import polars as pl
import polars.selectors as cs

_NESTED = ["customFields", "requestPreference"]


def clean_nones(obj: dict[str, typing.Any]) -> dict[str, typing.Any]:
    """Removes empty values so they don't overwrite data in FOLIO."""
    for k in list(obj.keys()):
        if k in _NESTED and isinstance(obj[k], dict):
            clean_nones(obj[k])
        if k == "personal" and isinstance(obj[k], dict):
            if "addresses" in obj[k]:
                for a in obj[k]["addresses"]:
                    clean_nones(a)
                obj[k]["addresses"] = [a for a in obj[k]["addresses"] if a != {}]
            clean_nones(obj[k])
        if obj[k] is None or obj[k] == {} or obj[k] == []:
            del obj[k]

    return obj


def _nest(
    batch: pl.LazyFrame,
    cols: list[str],
    prefix: str,
    alias: str,
) -> tuple[pl.LazyFrame, bool]:
    names = [c.removeprefix(prefix) for c in cols if c.startswith(prefix)]
    if len(names) == 0:
        return (batch, False)

    return (
        batch.with_columns(
            pl.struct(cs.starts_with(prefix)).struct.rename_fields(names).alias(alias),
        ),
        True,
    )


def transform_batch(batch: pl.LazyFrame) -> pl.LazyFrame:
    """Nests prefixed columns (personal_, personal_address_, requestPreference_)."""
    schema = batch.collect_schema()
    cols = schema.names()
    for c in cols:
        if c in ["departments", "preferredEmailCommunication"]:
            batch = batch.with_columns(pl.col(c).str.split(","))
        if c in ["customFields"]:
            batch = batch.with_columns(pl.col(c).str.json_decode())
        if (
            c in ["enrollmentDate", "expirationDate", "personal_dateOfBirth"]
            and schema[c].is_temporal()
        ):
            batch = batch.with_columns(pl.col(c).dt.to_string())

    cs_addresses = cs.starts_with("personal_address_")
    cs_personal = cs.starts_with("personal_") - cs_addresses
    cs_req_pref = cs.starts_with("requestPreference_")

    addresses = []
    for desc in ["primary", "secondary"]:
        (batch, nested) = _nest(
            batch,
            cols,
            f"personal_address_{desc}_",
            f"_address_{desc}",
        )
        if nested:
            addresses.append(f"_address_{desc}")

    personal_names = [
        c.removeprefix("personal_")
        for c in cols
        if c.startswith("personal_") and not c.startswith("personal_address_")
    ]
    personal_cols: list[typing.Any] = [cs_personal]
    if len(addresses) > 0:
        batch = batch.with_columns(
            pl.concat_list(addresses).alias("_addresses"),
        )
        personal_cols.append(cs.by_name("_addresses"))
        personal_names.append("addresses")
    if len(personal_names) > 0:
        batch = batch.with_columns(
            pl.struct(*personal_cols).struct.rename_fields(personal_names).alias(
                "personal",
            ),
        )

    (batch, _) = _nest(batch, cols, "requestPreference_", "requestPreference")

    return batch.select(
        cs.all() - cs_personal - cs_req_pref - cs_addresses - cs.starts_with("_address"),
    )
