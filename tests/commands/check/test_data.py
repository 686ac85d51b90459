from pathlib import Path
from unittest import mock

from pytest_cases import parametrize, parametrize_with_cases

_samples = sorted((Path(__file__).parent / "samples").glob("*.csv"))


class DataErrorCases:
    @parametrize(csv=[s for s in _samples if s.stem.startswith("ok")])
    def case_ok(self, csv: Path) -> tuple[Path, bool]:
        return (csv, True)

    @parametrize(csv=[s for s in _samples if s.stem.startswith("schema")])
    def case_bad_schema(self, csv: Path) -> tuple[Path, bool]:
        return (csv, False)


@mock.patch("folio_user_reconciler.commands.check.Folio")
@parametrize_with_cases("path,schema_expected", DataErrorCases)
def test_check_data(
    folio_mock: mock.Mock,
    path: Path,
    schema_expected: bool,  # noqa: FBT001
) -> None:
    import folio_user_reconciler.commands.check as uut

    folio_mock.return_value.test.return_value = None

    res = uut.run(
        uut.CheckOptions("", "", "", "", path),
    )

    assert res.read_ok, str(res.read_errors["data"]) if res.read_errors else None
    schema_ok = res.schema_ok
    assert schema_ok == schema_expected, (
        str(res.schema_errors["data"]) if res.schema_errors else None
    )


@mock.patch("folio_user_reconciler.commands.check.Folio")
def test_check_data_many_files(folio_mock: mock.Mock) -> None:
    import folio_user_reconciler.commands.check as uut

    folio_mock.return_value.test.return_value = None

    res = uut.run(uut.CheckOptions("", "", "", "", {s.stem: s for s in _samples}))

    assert res.read_ok
    assert res.schema_errors is not None
    assert set(res.schema_errors.keys()) == {
        s.stem for s in _samples if s.stem.startswith("schema")
    }
