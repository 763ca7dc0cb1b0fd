"""Import an uploaded ZIP archive of .eml/.json/.csv exports."""

from __future__ import annotations

import csv
import io
import json
import zipfile
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Iterator, Mapping, Optional

from loguru import logger

from mailmigration.application.committer import EmailCommitter
from mailmigration.application.fetching import DEFAULT_CHUNK_SIZE
from mailmigration.domain.entities.email_record import NO_SUBJECT, NormalizedEmailRecord
from mailmigration.domain.entities.run_counters import RunCounters
from mailmigration.domain.errors import ArchiveError, ParseError
from mailmigration.domain.models import ArchiveImportResult
from mailmigration.infrastructure.email.rfc822 import rfc822_to_email_record

SUPPORTED_SUFFIXES = (".eml", ".json", ".csv")


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def _parse_date(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


def record_from_mapping(data: Mapping[str, Any]) -> NormalizedEmailRecord:
    """Build a record from a JSON object or CSV row of an export."""
    if not isinstance(data, Mapping):
        raise ParseError(f"expected an object, got {type(data).__name__}")

    to = _first(data, "to", "To") or ""
    if isinstance(to, (list, tuple)):
        to = ", ".join(str(x) for x in to if x)

    return NormalizedEmailRecord(
        subject=str(_first(data, "subject", "Subject") or NO_SUBJECT),
        from_email=str(_first(data, "from", "From") or ""),
        to_email=str(to),
        body=str(_first(data, "body", "Body", "content") or ""),
        created_at=_parse_date(_first(data, "date", "Date")),
    )


class ImportArchiveUseCase:
    """Feed archive entries through the normal commit path in chunks."""

    def __init__(self, committer: EmailCommitter, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.committer = committer
        self.chunk_size = chunk_size

    def run(self, data: bytes, password: Optional[str] = None) -> ArchiveImportResult:
        zf = self._open(data, password)
        counters = RunCounters()
        errors: list[str] = []
        pending: list[NormalizedEmailRecord] = []

        with zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                for record in self._records(zf, info, counters, errors):
                    pending.append(record)
                    if len(pending) >= self.chunk_size:
                        counters.add(self.committer.commit(pending))
                        pending = []

        counters.add(self.committer.commit(pending))
        logger.info(
            f"Archive import finished: processed={counters.processed} "
            f"imported={counters.imported} failed={counters.failed}"
        )
        return ArchiveImportResult(
            success=True,
            processed=counters.processed,
            imported=counters.imported,
            failed=counters.failed,
            errors=errors or None,
        )

    def _open(self, data: bytes, password: Optional[str]) -> zipfile.ZipFile:
        try:
            zf = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise ArchiveError("Invalid ZIP file format") from e

        encrypted = any(info.flag_bits & 0x1 for info in zf.infolist())
        if encrypted and not password:
            zf.close()
            raise ArchiveError("Encrypted ZIP file detected. Please provide password.", encrypted=True)
        if password:
            zf.setpassword(password.encode("utf-8"))
        return zf

    def _records(
        self,
        zf: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        counters: RunCounters,
        errors: list[str],
    ) -> Iterator[NormalizedEmailRecord]:
        name = info.filename
        suffix = name[name.rfind("."):].lower() if "." in name else ""
        if suffix not in SUPPORTED_SUFFIXES:
            counters.mark_processed()
            counters.mark_failed()
            errors.append(f"Unsupported file type: {name}")
            return

        try:
            payload = zf.read(info)
        except RuntimeError as e:
            # zipfile reports a wrong password as RuntimeError
            raise ArchiveError("Invalid password or encrypted ZIP file", encrypted=True) from e
        except (zipfile.BadZipFile, NotImplementedError, OSError) as e:
            # NotImplementedError: compression method zipfile cannot read (e.g. AES)
            counters.mark_processed()
            counters.mark_failed()
            errors.append(f"Failed to process {name}: {e}")
            return

        if suffix == ".eml":
            items: list[Any] = [payload]
        else:
            try:
                items = self._structured_items(suffix, payload)
            except (ValueError, UnicodeDecodeError, csv.Error) as e:
                counters.mark_processed()
                counters.mark_failed()
                errors.append(f"Failed to process {name}: {e}")
                return

        for item in items:
            counters.mark_processed()
            try:
                if suffix == ".eml":
                    yield rfc822_to_email_record(item)
                else:
                    yield record_from_mapping(item)
            except ParseError as e:
                counters.mark_failed()
                errors.append(f"Failed to process {name}: {e}")

    def _structured_items(self, suffix: str, payload: bytes) -> list[Any]:
        text = payload.decode("utf-8-sig")
        if suffix == ".csv":
            return list(csv.DictReader(io.StringIO(text)))

        data = json.loads(text)
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("emails"), list):
            return data["emails"]
        logger.info("No emails found in JSON backup")
        return []
