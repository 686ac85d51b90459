"""Models for reconciling users with FOLIO."""

import typing
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from .errors import RequestValidationError

NO_USERS_TO_IMPORT = "No users to import."
USERS_WERE_IMPORTED_SUCCESSFULLY = "Users were imported successfully."
DEACTIVATED_MISSING_USERS = "Deactivated missing users."
USER_DEACTIVATION_SKIPPED = "Deactivation skipped."
FAILED_TO_IMPORT_USERS = "Failed to import users."
FAILED_TO_LIST_ADDRESS_TYPES = "Failed to list address types."
FAILED_TO_LIST_PATRON_GROUPS = "Failed to list patron groups."
FAILED_TO_PROCESS_USER_SEARCH_RESULT = "Failed to process user search result."
FAILED_TO_CREATE_NEW_USER_WITH_EXTERNAL_SYSTEM_ID = (
    "Failed to create new user with externalSystemId: "
)
FAILED_TO_UPDATE_USER_WITH_EXTERNAL_SYSTEM_ID = (
    "Failed to update user with externalSystemId: "
)
USER_SCHEMA_MISMATCH = "Wrong user schema in search result."
MULTIPLE_USERS_FOUND = "Multiple users found with externalSystemId: "
NO_SUCH_PATRON_GROUP = "No such patron group: "
NO_SUCH_ADDRESS_TYPE = "No such address type: "
ERROR_MESSAGE = " Error message: "

# https://s3.amazonaws.com/foliodocs/api/mod-users/p/users.html
PREFERRED_CONTACT_TYPES: Mapping[str, str] = MappingProxyType(
    {
        "mail": "001",
        "email": "002",
        "text": "003",
        "phone": "004",
        "mobile": "005",
    },
)

_ADDRESS_FIELDS = {
    "address_line1": "addressLine1",
    "address_line2": "addressLine2",
    "city": "city",
    "region": "region",
    "postal_code": "postalCode",
    "country_id": "countryId",
    "primary_address": "primaryAddress",
}

_PERSONAL_FIELDS = {
    "last_name": "lastName",
    "first_name": "firstName",
    "middle_name": "middleName",
    "preferred_first_name": "preferredFirstName",
    "email": "email",
    "phone": "phone",
    "mobile_phone": "mobilePhone",
    "date_of_birth": "dateOfBirth",
    "preferred_contact_type": "preferredContactTypeId",
}

_USER_FIELDS = {
    "id": "id",
    "barcode": "barcode",
    "type": "type",
    "enrollment_date": "enrollmentDate",
    "expiration_date": "expirationDate",
}

_KNOWN_USER_KEYS = {
    "externalSystemId",
    "username",
    "active",
    "patronGroup",
    "personal",
    *_USER_FIELDS.values(),
}


def _pick(obj: Mapping[str, typing.Any], names: dict[str, str]) -> dict[str, typing.Any]:
    return {py: obj.get(js) for (py, js) in names.items()}


def _flag(obj: Mapping[str, typing.Any], key: str, *, default: bool) -> bool:
    val = obj.get(key)
    if val is None:
        return default
    if isinstance(val, bool):
        return val
    if isinstance(val, str) and val.strip().lower() in ("true", "false"):
        return val.strip().lower() == "true"

    raise RequestValidationError([{"key": key, "value": val}])


@dataclass(frozen=True)
class Address:
    """An incoming address; address_type is the name of a FOLIO address type."""

    address_type: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country_id: str | None = None
    primary_address: bool | None = None

    @staticmethod
    def from_json(obj: Mapping[str, typing.Any]) -> "Address":
        """Parses an address in the shape of FOLIO's personal.addresses."""
        return Address(
            address_type=obj.get("addressTypeId"),
            **_pick(obj, _ADDRESS_FIELDS),
        )

    def to_json(self, address_type_id: str) -> dict[str, typing.Any]:
        """The FOLIO representation of this address with a resolved type id."""
        res = {
            js: getattr(self, py)
            for (py, js) in _ADDRESS_FIELDS.items()
            if getattr(self, py) is not None
        }
        res["addressTypeId"] = address_type_id
        return res


@dataclass(frozen=True)
class Personal:
    """The personal information block of an incoming user."""

    last_name: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    preferred_first_name: str | None = None
    email: str | None = None
    phone: str | None = None
    mobile_phone: str | None = None
    date_of_birth: str | None = None
    preferred_contact_type: str | None = None

    @staticmethod
    def from_json(obj: Mapping[str, typing.Any]) -> "Personal":
        return Personal(**_pick(obj, _PERSONAL_FIELDS))

    def to_json(self, contact_types: Mapping[str, str]) -> dict[str, typing.Any]:
        res = {
            js: getattr(self, py)
            for (py, js) in _PERSONAL_FIELDS.items()
            if getattr(self, py) is not None
        }
        if self.preferred_contact_type is not None:
            res["preferredContactTypeId"] = contact_types.get(
                self.preferred_contact_type,
                self.preferred_contact_type,
            )
        return res


@dataclass(frozen=True)
class IncomingUserRecord:
    """A user record submitted for import."""

    external_system_id: str | None
    username: str | None
    active: bool = True
    patron_group: str | None = None
    personal: Personal | None = None
    addresses: tuple[Address, ...] = ()

    id: str | None = None
    barcode: str | None = None
    type: str | None = None
    enrollment_date: str | None = None
    expiration_date: str | None = None

    extra: Mapping[str, typing.Any] = field(default_factory=dict)
    """FOLIO user fields passed through to the directory untouched."""

    @staticmethod
    def from_json(obj: Mapping[str, typing.Any]) -> "IncomingUserRecord":
        """Parses a user in the shape accepted by mod-user-import.

        :raises RequestValidationError if active is neither a boolean nor true/false
        """
        personal_obj = obj.get("personal")
        personal = None
        addresses: tuple[Address, ...] = ()
        if isinstance(personal_obj, Mapping):
            personal = Personal.from_json(personal_obj)
            addresses = tuple(
                Address.from_json(a) for a in personal_obj.get("addresses", [])
            )

        return IncomingUserRecord(
            external_system_id=obj.get("externalSystemId"),
            username=obj.get("username"),
            active=_flag(obj, "active", default=True),
            patron_group=obj.get("patronGroup"),
            personal=personal,
            addresses=addresses,
            extra={k: v for (k, v) in obj.items() if k not in _KNOWN_USER_KEYS},
            **_pick(obj, _USER_FIELDS),
        )

    def matching_id(self, source_type: str | None) -> str:
        """The externalSystemId this record has in FOLIO."""
        if source_type:
            return f"{source_type}_{self.external_system_id}"
        return str(self.external_system_id)

    def to_json(
        self,
        source_type: str | None,
        patron_group_id: str | None,
        addresses: list[dict[str, typing.Any]],
        contact_types: Mapping[str, str] = PREFERRED_CONTACT_TYPES,
    ) -> dict[str, typing.Any]:
        """The FOLIO representation of the incoming fields of this record."""
        user: dict[str, typing.Any] = dict(self.extra)
        user |= {
            js: getattr(self, py)
            for (py, js) in _USER_FIELDS.items()
            if getattr(self, py) is not None
        }
        user["externalSystemId"] = self.matching_id(source_type)
        user["username"] = self.username
        user["active"] = self.active
        if patron_group_id is not None:
            user["patronGroup"] = patron_group_id

        personal = (
            self.personal.to_json(contact_types) if self.personal is not None else {}
        )
        if len(addresses) > 0:
            personal["addresses"] = addresses
        if len(personal) > 0:
            user["personal"] = personal

        return user


@dataclass(frozen=True)
class ImportBatch:
    """A collection of user records imported in one operation."""

    records: Sequence[IncomingUserRecord]
    total_records: int
    deactivate_missing_users: bool = False
    update_only_present_fields: bool = False
    source_type: str | None = None

    @staticmethod
    def from_json(obj: Mapping[str, typing.Any]) -> "ImportBatch":
        """Parses a batch in the shape of a mod-user-import request.

        :raises RequestValidationError if a flag is neither a boolean nor true/false
        """
        return ImportBatch(
            records=tuple(IncomingUserRecord.from_json(u) for u in obj.get("users", [])),
            total_records=int(obj.get("totalRecords", 0)),
            deactivate_missing_users=_flag(
                obj,
                "deactivateMissingUsers",
                default=False,
            ),
            update_only_present_fields=_flag(
                obj,
                "updateOnlyPresentFields",
                default=False,
            ),
            source_type=obj.get("sourceType") or None,
        )


@dataclass(frozen=True)
class DirectoryUser:
    """A user as it already exists in FOLIO."""

    id: str
    external_system_id: str | None
    username: str | None
    active: bool
    patron_group: str | None
    addresses: tuple[Mapping[str, typing.Any], ...]
    raw: Mapping[str, typing.Any]
    """The user exactly as FOLIO returned it."""


@dataclass(frozen=True)
class ReferenceData:
    """Name to id lookups built once per batch."""

    address_types: Mapping[str, str]
    patron_groups: Mapping[str, str]
    contact_types: Mapping[str, str] = field(
        default_factory=lambda: PREFERRED_CONTACT_TYPES,
    )


@dataclass(frozen=True)
class Created:
    external_system_id: str
    username: str


@dataclass(frozen=True)
class Updated:
    external_system_id: str
    username: str


@dataclass(frozen=True)
class Failed:
    external_system_id: str
    username: str
    reason: str
    stage: str = "batch"
    """One of search, resolve, create, update, or batch."""


RecordOutcome = Created | Updated | Failed


@dataclass(frozen=True)
class DeactivationOutcome:
    """What happened while deactivating users missing from the batch."""

    ran: bool = False
    skipped: bool = False
    error: str | None = None
    deactivated: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()


@dataclass(frozen=True)
class FailedUser:
    external_system_id: str
    username: str
    error_message: str

    def to_json(self) -> dict[str, str]:
        return {
            "externalSystemId": self.external_system_id,
            "username": self.username,
            "errorMessage": self.error_message,
        }


@dataclass
class BatchReport:
    """The result of importing a single batch of users."""

    message: str
    total_records: int = 0
    created_records: int = 0
    updated_records: int = 0
    failed_records: int = 0
    failed_users: list[FailedUser] = field(default_factory=list)
    error: str | None = None
    ok: bool = True
    """Did the batch as a whole succeed? Individual users may still have failed."""

    def to_json(self) -> dict[str, typing.Any]:
        """The camelCase representation returned by mod-user-import."""
        res: dict[str, typing.Any] = {
            "message": self.message,
            "totalRecords": self.total_records,
            "createdRecords": self.created_records,
            "updatedRecords": self.updated_records,
            "failedRecords": self.failed_records,
            "failedUsers": [u.to_json() for u in self.failed_users],
        }
        if self.error is not None:
            res["error"] = self.error
        return res
