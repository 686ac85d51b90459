import typing
from unittest import mock

from pytest_cases import parametrize_with_cases

from folio_user_reconciler.reconcile import (
    DirectoryError,
    Found,
    MultipleMatches,
    NoMatch,
    NotFound,
    SearchFailed,
    SearchResult,
    SingleMatch,
    Unparseable,
    UserMatcher,
    classify_search,
)

_USER = {
    "id": "58512926-9a29-483b-b801-d36aced855d3",
    "externalSystemId": "amy_cabble",
    "username": "amy_cabble",
    "active": True,
    "personal": {"addresses": [{"addressTypeId": "home-id"}]},
}


class SearchCases:
    def case_single(self) -> tuple[typing.Any, type[SearchResult]]:
        return ({"users": [_USER], "totalRecords": 1}, SingleMatch)

    def case_none(self) -> tuple[typing.Any, type[SearchResult]]:
        return ({"users": [], "totalRecords": 0}, NoMatch)

    def case_many(self) -> tuple[typing.Any, type[SearchResult]]:
        return ({"users": [_USER, _USER | {"id": "other"}]}, MultipleMatches)

    def case_not_an_object(self) -> tuple[typing.Any, type[SearchResult]]:
        return ([_USER], Unparseable)

    def case_no_users(self) -> tuple[typing.Any, type[SearchResult]]:
        return ({"totalRecords": 1}, Unparseable)

    def case_no_id(self) -> tuple[typing.Any, type[SearchResult]]:
        return ({"users": [{"username": "amy_cabble"}]}, Unparseable)

    def case_bad_addresses(self) -> tuple[typing.Any, type[SearchResult]]:
        return ({"users": [_USER | {"personal": {"addresses": "home"}}]}, Unparseable)

    def case_bad_active(self) -> tuple[typing.Any, type[SearchResult]]:
        return ({"users": [_USER | {"active": "yes"}]}, Unparseable)


@parametrize_with_cases("res,expected", cases=SearchCases)
def test_classify_search(res: typing.Any, expected: type[SearchResult]) -> None:
    assert isinstance(classify_search(res), expected)


def test_classify_search_single_match() -> None:
    res = classify_search({"users": [_USER]})

    assert isinstance(res, SingleMatch)
    assert res.user.id == _USER["id"]
    assert res.user.external_system_id == "amy_cabble"
    assert res.user.addresses == ({"addressTypeId": "home-id"},)
    assert res.user.raw == _USER


class MatchCases:
    def case_found(self) -> tuple[mock.Mock, typing.Any]:
        d = mock.Mock()
        d.search_by_external_id.return_value = classify_search({"users": [_USER]})
        return (d, Found)

    def case_not_found(self) -> tuple[mock.Mock, typing.Any]:
        d = mock.Mock()
        d.search_by_external_id.return_value = NoMatch()
        return (d, NotFound())

    def case_error(self) -> tuple[mock.Mock, typing.Any]:
        d = mock.Mock()
        d.search_by_external_id.side_effect = DirectoryError("timed out")
        return (
            d,
            SearchFailed(
                "Failed to process user search result. Error message: timed out",
            ),
        )

    def case_multiple(self) -> tuple[mock.Mock, typing.Any]:
        d = mock.Mock()
        d.search_by_external_id.return_value = MultipleMatches(2)
        return (
            d,
            SearchFailed(
                "Failed to process user search result. "
                "Multiple users found with externalSystemId: amy_cabble",
            ),
        )

    def case_schema_mismatch(self) -> tuple[mock.Mock, typing.Any]:
        d = mock.Mock()
        d.search_by_external_id.return_value = Unparseable("User has no id")
        return (
            d,
            SearchFailed(
                "Failed to process user search result. "
                "Wrong user schema in search result.",
            ),
        )


@parametrize_with_cases("search_directory,expected", cases=MatchCases)
def test_find(search_directory: mock.Mock, expected: typing.Any) -> None:
    uut = UserMatcher(search_directory)

    res = uut.find("amy_cabble")

    search_directory.search_by_external_id.assert_called_once_with("amy_cabble")
    if isinstance(expected, type):
        assert isinstance(res, expected)
    else:
        assert res == expected
