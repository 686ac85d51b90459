"""Schema of the csv files users are imported from."""

import json
import typing

import pandera.polars as pla
import polars as pl
import polars.selectors as cs
from pandera.engines.polars_engine import Date

# https://dev.folio.org/guides/uuids/
_FOLIO_UUID = (
    r""
    r"^[a-fA-F0-9]{8}-"
    r"[a-fA-F0-9]{4}-"
    r"[1-5][a-fA-F0-9]{3}-"
    r"[89abAB][a-fA-F0-9]{3}-"
    r"[a-fA-F0-9]{12}$"
)

# https://regex101.com/library/6EL6YF
_EMAIL_ADDRESS = r"((?:[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*|\"(?:[\x01-\x08\x0b\x0c\x0e-\x1f\x21\x23-\x5b\x5d-\x7f]|\\[\x01-\x09\x0b\x0c\x0e-\x7f])*\")@(?:(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?|\[(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?|[a-z0-9-]*[a-z0-9]:(?:[\x01-\x08\x0b\x0c\x0e-\x1f\x21-\x5a\x53-\x7f]|\\[\x01-\x09\x0b\x0c\x0e-\x7f])+)\]))"  # noqa: E501


def is_json(maybe: str) -> bool:
    try:
        json.loads(maybe)
    except ValueError:
        return False

    return True


def is_unique_list(
    vals: set[str] | None = None,
) -> typing.Callable[[str], bool]:
    """Checks comma separated values are unique and (optionally) allowed."""

    def val_filter(col: str) -> bool:
        all_vals = col.split(",")
        unique_vals = set(all_vals)
        return len(unique_vals) == len(all_vals) and (
            vals is None or len(unique_vals - vals) == 0
        )

    return val_filter


class SubSchema:
    """Columns sharing a prefix which are required when any of them are present."""

    def __init__(self, prefix: str, req_cols: list[str]) -> None:
        """Initializes a new instance of SubSchema."""
        self._prefix = prefix
        self._req_cols = {f"{prefix}_{col}" for col in req_cols}
        self._cs_prefix = cs.starts_with(f"{prefix}_")

    def checks(self) -> list[pla.Check]:
        return [
            pla.Check(self._required, name=f"{self._prefix} required"),
            pla.Check(self._not_nullable, name=f"{self._prefix} SERIES_CONTAINS_NULLS"),
        ]

    def _cols(self, data: pla.PolarsData) -> set[str]:
        return set(data.lazyframe.select(self._cs_prefix).collect_schema().names())

    def _required(self, data: pla.PolarsData) -> bool:
        pref_cols = self._cols(data)
        if len(pref_cols) == 0:
            return True
        return len(self._req_cols - pref_cols) == 0

    def _not_nullable(self, data: pla.PolarsData) -> bool:
        pref_cols = self._cols(data)
        req_cols = list(self._req_cols & pref_cols)
        if len(req_cols) == 0:
            return True

        # a row without any of the prefixed values doesn't need the required ones
        present = pl.any_horizontal(pl.col(sorted(pref_cols)).is_not_null())
        missing = pl.any_horizontal(pl.col(req_cols).is_null())
        return not data.lazyframe.select((present & missing).any()).collect().item()


def _optional(
    dtype: typing.Any,  # noqa: ANN401
    description: str,
    checks: list[pla.Check] | None = None,
    *,
    unique: bool = False,
) -> pla.Column:
    return pla.Column(
        dtype,
        description=description,
        required=False,
        nullable=True,
        unique=unique,
        checks=checks,
    )


def _address(desc: str) -> dict[str, pla.Column]:
    prefix = f"personal_address_{desc}_"
    return {
        f"{prefix}countryId": _optional(str, "The country code for this address"),
        f"{prefix}addressLine1": _optional(str, "Address, Line 1"),
        f"{prefix}addressLine2": _optional(str, "Address, Line 2"),
        f"{prefix}city": _optional(str, "City name"),
        f"{prefix}region": _optional(str, "Region"),
        f"{prefix}postalCode": _optional(str, "Postal Code"),
        f"{prefix}addressTypeId": _optional(
            str,
            "The name of an address type object at the /addresstypes API; "
            "this is different from the addressTypeId property of the /users API "
            "that is a UUID.",
        ),
        f"{prefix}primaryAddress": _optional(
            bool,
            "Whether this is the user's primary address",
        ),
    }


UserImportSchema = pla.DataFrameSchema(
    {
        "username": pla.Column(
            str,
            description="A unique name belonging to a user. Typically used for login",
            unique=True,
        ),
        "externalSystemId": pla.Column(
            str,
            description="A unique ID that corresponds to an external authority",
            unique=True,
        ),
        "id": _optional(
            str,
            "A globally unique (UUID) identifier for the user",
            [pla.Check.str_matches(_FOLIO_UUID, name="folio_id")],
            unique=True,
        ),
        "barcode": _optional(
            str,
            "The unique library barcode for this user",
            unique=True,
        ),
        "active": _optional(
            bool,
            "A flag to determine if the user's account is effective and not expired",
        ),
        "type": _optional(
            str,
            "The class of user like staff or patron",
            [pla.Check.isin(["patron", "staff"])],
        ),
        "patronGroup": _optional(
            str,
            "The name of the patron group the user belongs to; "
            "this is different from the patronGroup property of the /users API "
            "that is a UUID.",
        ),
        "departments": _optional(
            str,
            "Comma separated names of the departments the user belongs to",
            [pla.Check(is_unique_list(), name="unique", element_wise=True)],
        ),
        "enrollmentDate": _optional(
            Date(),
            "The date in which the user joined the organization",
        ),
        "expirationDate": _optional(Date(), "The date for when the user becomes inactive"),
        "preferredEmailCommunication": _optional(
            str,
            "Preferred email communication types",
            [
                pla.Check(
                    is_unique_list({"Support", "Programs", "Services"}),
                    element_wise=True,
                    name="unique isin",
                ),
            ],
        ),
        "personal_lastName": _optional(str, "The user's surname"),
        "personal_firstName": _optional(str, "The user's given name"),
        "personal_middleName": _optional(str, "The user's middle name (if any)"),
        "personal_preferredFirstName": _optional(str, "The user's preferred name"),
        "personal_email": _optional(
            str,
            "The user's email address",
            [pla.Check.str_matches(_EMAIL_ADDRESS, name="invalid")],
        ),
        "personal_phone": _optional(str, "The user's primary phone number"),
        "personal_mobilePhone": _optional(str, "The user's mobile phone number"),
        "personal_dateOfBirth": _optional(Date(), "The user's birth date"),
        "personal_preferredContactTypeId": _optional(
            str,
            "Name of user's preferred contact type. "
            "One of mail, email, text, phone, mobile.",
            [pla.Check.isin(["mail", "email", "text", "phone", "mobile"])],
        ),
        **_address("primary"),
        **_address("secondary"),
        "requestPreference_holdShelf": _optional(
            bool,
            "Whether 'Hold Shelf' option is available to the user.",
        ),
        "requestPreference_delivery": _optional(
            bool,
            "Whether 'Delivery' option is available to the user.",
        ),
        "requestPreference_fulfillment": _optional(
            str,
            "Preferred fulfillment type.",
            [pla.Check.isin(["Delivery", "Hold Shelf"])],
        ),
        "customFields": _optional(
            str,
            "Object that contains custom field",
            [pla.Check(is_json, element_wise=True, name="invalid")],
        ),
    },
    checks=[
        *SubSchema("personal", ["lastName"]).checks(),
        *SubSchema("requestPreference", ["holdShelf", "delivery"]).checks(),
    ],
    strict=True,
)
