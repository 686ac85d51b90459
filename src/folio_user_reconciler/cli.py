"""The Command Line Interface for fureco."""

import argparse
import getpass
import os
import sys
import typing
from dataclasses import dataclass
from functools import lru_cache, partial
from pathlib import Path
from urllib.parse import ParseResult, urlparse

from folio_user_reconciler import _cli_log
from folio_user_reconciler.commands import check, user_import

_ENV_FOLIO_ENDPOINT = "FURECO__FOLIO__ENDPOINT"
_ENV_FOLIO_TENANT = "FURECO__FOLIO__TENANT"
_ENV_FOLIO_USERNAME = "FURECO__FOLIO__USERNAME"
_ENV_FOLIO_PASSWORD = "FURECO__FOLIO__PASSWORD"  # noqa:S105

_ENV_BATCH_SIZE = "FURECO__BATCHSETTINGS__BATCHSIZE"
_ENV_MAX_CONCURRENCY = "FURECO__BATCHSETTINGS__MAXCONCURRENCY"

_ENV_DEACTIVATE_MISSING_USERS = "FURECO__IMPORT__DEACTIVATEMISSINGUSERS"
_ENV_UPDATE_ALL_FIELDS = "FURECO__IMPORT__UPDATEALLFIELDS"
_ENV_SOURCE_TYPE = "FURECO__IMPORT__SOURCETYPE"

_parse_endpoint = partial(urlparse, scheme="https")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "0") == "1"


def _or_env(name: str) -> str:
    return f"Falls back to the {name} environment variable."


@dataclass
class _ParsedArgs:
    # environment variables or defaults, overridden by flags
    batch_size: int
    max_concurrency: int
    folio_endpoint: ParseResult | None = None
    folio_tenant: str | None = None
    folio_username: str | None = None
    folio_password: str | None = None
    source_type: str | None = None
    env_deactivate_missing_users: bool = False
    env_update_all_fields: bool = False

    # flags only
    command: str | None = None
    ask_folio_password: bool = False
    verbose: int = 0
    log_directory: Path = Path("./logs")

    # None unless --[no-]flag was passed
    deactivate_missing_users: bool | None = None
    update_all_fields: bool | None = None

    # the first path is parsed by the main parser, see _add_data
    data: Path | None = None
    additional_data: list[Path] | None = None

    @staticmethod
    def from_environ() -> "_ParsedArgs":
        return _ParsedArgs(
            batch_size=int(os.environ.get(_ENV_BATCH_SIZE, "1000")),
            max_concurrency=int(os.environ.get(_ENV_MAX_CONCURRENCY, "6")),
            folio_endpoint=_parse_endpoint(os.environ[_ENV_FOLIO_ENDPOINT])
            if _ENV_FOLIO_ENDPOINT in os.environ
            else None,
            folio_tenant=os.environ.get(_ENV_FOLIO_TENANT),
            folio_username=os.environ.get(_ENV_FOLIO_USERNAME),
            folio_password=os.environ.get(_ENV_FOLIO_PASSWORD),
            source_type=os.environ.get(_ENV_SOURCE_TYPE),
            env_deactivate_missing_users=_env_flag(_ENV_DEACTIVATE_MISSING_USERS),
            env_update_all_fields=_env_flag(_ENV_UPDATE_ALL_FIELDS),
        )

    @property
    def folio_url(self) -> str | None:
        return None if self.folio_endpoint is None else self.folio_endpoint.geturl()

    @property
    def data_location(self) -> dict[str, Path] | None:
        if self.data is None:
            return None

        locations: dict[str, Path] = {}
        for p in [self.data, *(self.additional_data or [])]:
            if p.is_file():
                locations[p.stem] = p
            elif p.is_dir():
                locations |= {sp.stem: sp for sp in p.glob("**/*.csv")}
            else:
                missing = f"{p.resolve().absolute()} does not exist or isn't readable"
                raise ValueError(missing)

        return locations or None

    def _connection(self) -> tuple[str, str, str, str, dict[str, Path]]:
        folio_url = self.folio_url
        data_location = self.data_location
        if (
            folio_url is None
            or self.folio_tenant is None
            or self.folio_username is None
            or self.folio_password is None
            or data_location is None
        ):
            missing = "One or more required options is missing"
            raise ValueError(missing)

        return (
            folio_url,
            self.folio_tenant,
            self.folio_username,
            self.folio_password,
            data_location,
        )

    def as_check_options(self) -> check.CheckOptions:
        return check.CheckOptions(*self._connection())

    def as_import_options(self) -> user_import.ImportOptions:
        if self.batch_size < 1 or self.max_concurrency < 1:
            not_positive = "Batch size and max concurrency must be at least 1"
            raise ValueError(not_positive)

        return user_import.ImportOptions(
            *self._connection(),
            batch_size=self.batch_size,
            max_concurrency=self.max_concurrency,
            deactivate_missing_users=self.env_deactivate_missing_users
            if self.deactivate_missing_users is None
            else self.deactivate_missing_users,
            update_all_fields=self.env_update_all_fields
            if self.update_all_fields is None
            else self.update_all_fields,
            source_type=self.source_type,
        )

    @staticmethod
    @lru_cache
    def parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="fureco",
            description="Creates, updates, and deactivates FOLIO users "
            "to match the users in csv files.",
        )
        parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
        parser.add_argument(
            "-v",
            "--verbose",
            action="count",
            help="Log more to the console, repeat for even more.",
        )
        parser.add_argument(
            "--log-directory",
            type=Path,
            help="Where log files are written, ./logs by default.",
        )

        _add_folio_args(parser.add_argument_group("FOLIO Settings"))
        _add_batch_args(parser.add_argument_group("Batch Settings"))

        commands = parser.add_subparsers(dest="command", metavar="command")
        check_desc = "Validates the csv files and the connection to FOLIO."
        check_parser = commands.add_parser(
            "check",
            help=check_desc,
            description=check_desc,
        )
        import_desc = "Reconciles the users in the csv files with FOLIO."
        import_parser = commands.add_parser(
            "import",
            help=import_desc,
            description=import_desc,
        )
        _add_import_args(import_parser)

        _add_data(parser, check_parser, import_parser)
        return parser


def _add_folio_args(group: argparse._ArgumentGroup) -> None:
    group.add_argument(
        "-e",
        "--folio-endpoint",
        type=_parse_endpoint,
        help=f"Url of FOLIO's api gateway. {_or_env(_ENV_FOLIO_ENDPOINT)}",
    )
    group.add_argument(
        "-t",
        "--folio-tenant",
        type=str,
        help=f"FOLIO tenant to reconcile users in. {_or_env(_ENV_FOLIO_TENANT)}",
    )
    group.add_argument(
        "-u",
        "--folio-username",
        type=str,
        help=f"FOLIO user making the changes. {_or_env(_ENV_FOLIO_USERNAME)}",
    )
    group.add_argument(
        "-p",
        "--ask-folio-password",
        action="store_true",
        help="Prompt for the FOLIO user's password. "
        f"{_or_env(_ENV_FOLIO_PASSWORD)}",
    )


def _add_batch_args(group: argparse._ArgumentGroup) -> None:
    group.add_argument(
        "--batch-size",
        type=int,
        help="Most users reconciled as one batch, "
        "deactivation needs every user in one batch. "
        f"{_or_env(_ENV_BATCH_SIZE)}",
    )
    group.add_argument(
        "--max-concurrency",
        type=int,
        help="Most users being reconciled with FOLIO at once. "
        f"{_or_env(_ENV_MAX_CONCURRENCY)}",
    )


def _add_import_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--deactivate-missing-users",
        action=argparse.BooleanOptionalAction,
        help="Deactivate active users of the source type missing from the csvs. "
        f"{_or_env(_ENV_DEACTIVATE_MISSING_USERS)}",
    )
    parser.add_argument(
        "--update-all-fields",
        action=argparse.BooleanOptionalAction,
        help="Replace the addresses of existing users instead of updating "
        f"only the address types in the csvs. {_or_env(_ENV_UPDATE_ALL_FIELDS)}",
    )
    parser.add_argument(
        "--source-type",
        type=str,
        help="Prefixed to every externalSystemId, "
        "and limits deactivation to users with the prefix. "
        f"{_or_env(_ENV_SOURCE_TYPE)}",
        # a subparser default would overwrite the environment variable
        default=argparse.SUPPRESS,
    )


def _add_data(
    parser: argparse.ArgumentParser,
    *subparsers: argparse.ArgumentParser,
) -> None:
    # https://stackoverflow.com/a/74492728
    # nargs="*" on both the main parser and subparsers doesn't parse,
    # the main parser takes the last path and the subparser the rest
    desc = "One or more csvs or directories containing csvs."
    for s in subparsers:
        s.add_argument(
            "additional_data",
            action="extend",
            nargs="*",
            metavar="data",
            type=Path,
            help=desc,
        )
    parser.add_argument("data", type=Path, help=desc)


def _ask_password(parser: argparse.ArgumentParser) -> str:
    password = getpass.getpass("FOLIO Password:")
    if len(password) == 0:
        parser.print_usage()
        empty = "FOLIO Password is required"
        raise ValueError(empty)
    return password


def _options(
    parser: argparse.ArgumentParser,
    build: typing.Callable[[], typing.Any],
) -> typing.Any:  # noqa: ANN401
    try:
        return build()
    except ValueError:
        parser.print_usage()
        raise


def main(args: list[str] | None = None) -> None:
    """Marshalls inputs and executes commands for fureco."""
    parser = _ParsedArgs.parser()
    parsed_args = parser.parse_args(args, namespace=_ParsedArgs.from_environ())

    verbose = parsed_args.verbose or 0
    _cli_log.initialize(
        parsed_args.log_directory,
        30 - (verbose * 10),
        20 - (min(1, verbose) * 10),
    )

    if parsed_args.ask_folio_password:
        parsed_args.folio_password = _ask_password(parser)

    if parsed_args.command == "check":
        c_opts = _options(parser, parsed_args.as_check_options)
        check.run(c_opts).write_results(sys.stdout)
    elif parsed_args.command == "import":
        i_opts = _options(parser, parsed_args.as_import_options)
        user_import.run(i_opts).write_results(sys.stdout)


if __name__ == "__main__":
    main()
