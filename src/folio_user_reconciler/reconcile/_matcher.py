"""Matches incoming records to existing FOLIO users."""

import logging
from dataclasses import dataclass

from ._directory import Directory, MultipleMatches, NoMatch, SingleMatch, Unparseable
from ._models import (
    ERROR_MESSAGE,
    FAILED_TO_PROCESS_USER_SEARCH_RESULT,
    MULTIPLE_USERS_FOUND,
    USER_SCHEMA_MISMATCH,
    DirectoryUser,
)
from .errors import DirectoryError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
    user: DirectoryUser


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class SearchFailed:
    reason: str


MatchResult = Found | NotFound | SearchFailed


class UserMatcher:
    """Looks up existing users by externalSystemId."""

    def __init__(self, directory: Directory) -> None:
        """Initializes a new instance of UserMatcher."""
        self._directory = directory

    def find(self, external_system_id: str) -> MatchResult:
        """Finds the FOLIO user for an externalSystemId.

        A response that can't be understood is never treated as not found.
        """
        try:
            res = self._directory.search_by_external_id(external_system_id)
        except DirectoryError as e:
            log.warning("Search for %s failed: %s", external_system_id, e)
            return SearchFailed(
                f"{FAILED_TO_PROCESS_USER_SEARCH_RESULT}{ERROR_MESSAGE}{e}",
            )

        if isinstance(res, SingleMatch):
            return Found(res.user)
        if isinstance(res, NoMatch):
            return NotFound()
        if isinstance(res, MultipleMatches):
            log.warning("%d users share %s", res.count, external_system_id)
            return SearchFailed(
                f"{FAILED_TO_PROCESS_USER_SEARCH_RESULT} "
                f"{MULTIPLE_USERS_FOUND}{external_system_id}",
            )
        if isinstance(res, Unparseable):
            log.warning(
                "Unexpected search result for %s: %s",
                external_system_id,
                res.detail,
            )
            return SearchFailed(
                f"{FAILED_TO_PROCESS_USER_SEARCH_RESULT} {USER_SCHEMA_MISMATCH}",
            )

        unknown = f"Unknown search result {res!r}"
        raise TypeError(unknown)
