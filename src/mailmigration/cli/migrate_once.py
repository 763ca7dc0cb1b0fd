"""One-shot mailbox migration (or connection test) from the command line."""

from __future__ import annotations

import argparse
import getpass
import json
import os
import signal
from datetime import date

from loguru import logger

from mailmigration.application.cancellation import CancellationToken
from mailmigration.application.committer import EmailCommitter
from mailmigration.application.use_cases import MigrateMailboxUseCase
from mailmigration.domain import MigrationAction, MigrationRequest
from mailmigration.domain.errors import ConnectError, EnumerationError
from mailmigration.infrastructure import configure_logging, get_settings
from mailmigration.infrastructure.email.providers.imap import ImapConnector
from mailmigration.infrastructure.stores import get_email_store


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Migrate an IMAP mailbox into the email store")
    parser.add_argument("--host", required=True, help="IMAP hostname")
    parser.add_argument("--port", type=int, default=None, help="IMAP port (default: 993)")
    parser.add_argument("--no-ssl", action="store_true", help="Plain connection upgraded with STARTTLS when offered")
    parser.add_argument("--username", required=True, help="Mailbox login")
    parser.add_argument("--folder", action="append", dest="folders", help="Folder to migrate (repeatable, default: INBOX)")
    parser.add_argument("--date-from", type=date.fromisoformat, default=None, help="YYYY-MM-DD, inclusive")
    parser.add_argument("--date-to", type=date.fromisoformat, default=None, help="YYYY-MM-DD, inclusive")
    parser.add_argument("--max-messages", type=int, default=None, help="Stop after this many messages")
    parser.add_argument("--allow-insecure-tls", action="store_true", help="Skip certificate checks (testing only)")
    parser.add_argument("--test", action="store_true", help="Only list mailboxes")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    password = os.getenv("MAILMIGRATION_PASSWORD") or getpass.getpass(f"Password for {args.username}: ")

    request = MigrationRequest(
        host=args.host,
        port=args.port or settings.imap_default_port,
        secure=not args.no_ssl,
        username=args.username,
        password=password,
        folders=args.folders or [settings.migration_default_folder],
        date_from=args.date_from,
        date_to=args.date_to,
        max_messages=args.max_messages,
        allow_insecure_tls=args.allow_insecure_tls,
        action=MigrationAction.TEST if args.test else MigrationAction.MIGRATE,
    )

    cancel = CancellationToken()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, stopping after the current message...")
        cancel.cancel()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    use_case = MigrateMailboxUseCase(
        connector=ImapConnector(timeout=settings.imap_timeout_seconds),
        committer=EmailCommitter(get_email_store()),
        chunk_size=settings.migration_chunk_size,
    )

    try:
        result = use_case.run(request, cancel=cancel)
    except ConnectError as e:
        print(json.dumps({"error": e.user_message}))
        return 1
    except EnumerationError as e:
        print(json.dumps({"error": str(e) or EnumerationError.user_message}))
        return 1

    print(json.dumps(result.model_dump(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
