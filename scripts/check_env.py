"""Pre-flight check for a sync deployment's ``.env`` file.

``check`` loads the file into ``AppSettings``, confirms the Google service
account key is readable and prints what the next run would do. ``record`` and
``verify`` additionally keep a ``sha256sum``-compatible baseline of the file so
an unexpected edit (a key pasted over the wrong variable, a folder id dropped)
is caught before the daily cron fires.

Example usages::

    python -m scripts.check_env check --env-file /opt/sprout-sync/.env

    python -m scripts.check_env record --env-file /opt/sprout-sync/.env \
        --hash-file /opt/sprout-sync/.env.sha256

    # From cron/systemd, ahead of the sync trigger.
    python -m scripts.check_env verify --env-file /opt/sprout-sync/.env \
        --hash-file /opt/sprout-sync/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from datetime import date
from pathlib import Path

from pydantic import ValidationError

from sprout_sync.clients.google_auth import ServiceAccountAuthorizer
from sprout_sync.core.config import AppSettings, _load_env_file
from sprout_sync.core.errors import AuthFailure

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_KEY_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _digest(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    if not env_file.exists():
        raise FileNotFoundError(
            f"Environment file {env_file} does not exist; "
            "point --env-file at the deployment's .env."
        )
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _describe(settings: AppSettings, account: str) -> str:
    google = settings.google
    start, end = settings.sync.reporting_window(date.today())
    key_source = (
        "GOOGLE_CREDENTIALS_JSON" if google.credentials_json else str(google.service_account_file)
    )
    return "\n".join(
        [
            f"Sprout customer:  {settings.sprout.customer_id}",
            f"Service account:  {account} (from {key_source})",
            f"Drive folders:    {', '.join(google.drive_folder_ids)}",
            f"Reporting window: {start.isoformat()} to {end.isoformat()}",
            f"Cron secret:      {'set' if settings.cron_secret else 'not set'}",
        ]
    )


def _read_baseline(hash_file: Path) -> str | None:
    if not hash_file.exists():
        return None
    line = hash_file.read_text(encoding="utf-8").strip()
    return line.split()[0] if line else None


def _record(env_file: Path, hash_file: Path) -> int:
    checksum = _digest(env_file)
    hash_file.write_text(f"{checksum}  {env_file.name}\n", encoding="utf-8")
    print(f"Recorded baseline for {env_file} in {hash_file}")
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    expected = _read_baseline(hash_file)
    if expected is None:
        print(
            f"No baseline found in {hash_file}; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    actual = _digest(env_file)
    if actual != expected:
        print(
            f"{env_file} changed since the baseline was recorded\n"
            f"  baseline: {expected}\n"
            f"  current:  {actual}\n"
            "Review the change, then re-run 'record' if it was intended.",
            file=sys.stderr,
        )
        return EXIT_CHECKSUM_ERROR

    print(f"{env_file} matches the recorded baseline.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate sync settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for command, help_text in (
        ("check", "Validate settings and the service account key."),
        ("record", "Validate, then store the checksum baseline."),
        ("verify", "Validate, then compare against the checksum baseline."),
    ):
        subparser = subparsers.add_parser(command, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: ./.env).",
        )
        if command != "check":
            subparser.add_argument(
                "--hash-file",
                required=True,
                type=Path,
                help="Where the checksum baseline lives.",
            )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    try:
        settings = _load_settings(env_file)
        account = ServiceAccountAuthorizer(settings.google).service_account_email()
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except AuthFailure as exc:
        print(f"Service account key is unusable: {exc}", file=sys.stderr)
        return EXIT_KEY_ERROR

    print(_describe(settings, account))

    if args.command == "record":
        return _record(env_file, args.hash_file)
    if args.command == "verify":
        return _verify(env_file, args.hash_file)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
