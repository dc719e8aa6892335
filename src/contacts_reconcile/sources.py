from __future__ import annotations

import logging
import os
import re
from io import StringIO
from typing import Any, Iterable, List, Optional

import pandas as pd

from .errors import SourceUnavailableError
from .models import RawRecord

logger = logging.getLogger(__name__)

MULTI_VALUE_SPLIT = re.compile(r"\s*:::\s*")
EMAIL_COLUMN = re.compile(r"^(e-?mail)( \d+ - value)?$", re.IGNORECASE)
PHONE_COLUMN = re.compile(r"^(phone|mobile|tel)( \d+ - value)?$", re.IGNORECASE)
ID_COLUMNS = ("ID", "Id", "id", "Contact ID", "UID")


def _coerce_to_string(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def safe_get(row: Any, key: str) -> str:
    try:
        return _coerce_to_string(row.get(key, ""))
    except (AttributeError, KeyError, TypeError):
        return ""


def split_multi_values(raw: str) -> List[str]:
    if not raw:
        return []
    return [segment for segment in MULTI_VALUE_SPLIT.split(raw.strip()) if segment]


def read_csv_with_optional_header(path: str, header_starts_with: Optional[str] = None) -> pd.DataFrame:
    if not header_starts_with:
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    with open(path, "r", encoding="utf-8", errors="ignore") as handle:
        lines = handle.read().splitlines()
    header_idx: Optional[int] = None
    for index, line in enumerate(lines[:100]):
        if line.strip().startswith(header_starts_with):
            header_idx = index
            break
    if header_idx is None:
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    return pd.read_csv(StringIO("\n".join(lines[header_idx:])), dtype=str, keep_default_na=False)


def _require_file(path: Optional[str], label: str) -> str:
    if not path or not os.path.exists(path):
        raise SourceUnavailableError(f"{label} not found: {path}")
    if not os.access(path, os.R_OK):
        raise SourceUnavailableError(f"{label} is not readable: {path}")
    return path


class StaticContactSource:
    def __init__(self, records: Optional[Iterable[RawRecord]] = None):
        self.records: List[RawRecord] = list(records or [])

    def fetch_all(self) -> List[RawRecord]:
        return list(self.records)


class CsvContactSource:
    """Address-book CSV export (Google Contacts style or a plain Name/Email/Phone sheet)."""

    def __init__(self, path: str, header_starts_with: Optional[str] = None):
        self.path = path
        self.header_starts_with = header_starts_with

    def fetch_all(self) -> List[RawRecord]:
        path = _require_file(self.path, "Contacts CSV")
        try:
            df = read_csv_with_optional_header(path, self.header_starts_with)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise SourceUnavailableError(f"could not read {path}: {exc}") from exc

        email_columns = [column for column in df.columns if EMAIL_COLUMN.match(str(column))]
        phone_columns = [column for column in df.columns if PHONE_COLUMN.match(str(column))]
        id_column = next((column for column in ID_COLUMNS if column in df.columns), None)

        records: List[RawRecord] = []
        for idx, row in df.iterrows():
            name = safe_get(row, "Name") or " ".join(
                part
                for part in (
                    safe_get(row, "First Name") or safe_get(row, "Given Name"),
                    safe_get(row, "Last Name") or safe_get(row, "Family Name"),
                )
                if part
            )
            emails: List[str] = []
            for column in email_columns:
                emails.extend(split_multi_values(safe_get(row, column)))
            phones: List[str] = []
            for column in phone_columns:
                phones.extend(split_multi_values(safe_get(row, column)))
            source_id = safe_get(row, id_column) if id_column else ""
            records.append(
                RawRecord(
                    source_id=source_id or str(idx),
                    name=name or None,
                    emails=emails,
                    phones=phones,
                )
            )
        logger.debug("Read %d contact(s) from %s", len(records), path)
        return records


def _unescape_vcard_value(value: str) -> str:
    if not value:
        return ""
    replacements = {
        "\\;": ";",
        "\\,": ",",
        "\\n": " ",
        "\\N": " ",
        "\\\\": "\\",
    }
    for old, new in replacements.items():
        value = value.replace(old, new)
    return value.strip()


def _unfold_lines(content: str) -> List[str]:
    lines: List[str] = []
    for raw_line in content.splitlines():
        if raw_line[:1] in (" ", "\t") and lines:
            lines[-1] += raw_line[1:]
        else:
            lines.append(raw_line)
    return lines


class VCardContactSource:
    """Contacts exported as a ``.vcf`` file (one or many cards)."""

    def __init__(self, path: str):
        self.path = path

    def fetch_all(self) -> List[RawRecord]:
        path = _require_file(self.path, "vCard file")
        try:
            with open(path, "r", encoding="utf-8", errors="ignore") as handle:
                content = handle.read()
        except OSError as exc:
            raise SourceUnavailableError(f"could not read {path}: {exc}") from exc

        records: List[RawRecord] = []
        current: Optional[dict] = None
        for raw_line in _unfold_lines(content):
            line = raw_line.strip()
            if not line or ":" not in line:
                continue
            key_part, value = line.split(":", 1)
            key = key_part.split(";", 1)[0].upper()
            if "." in key:
                key = key.rsplit(".", 1)[1]
            if key == "BEGIN" and value.strip().upper() == "VCARD":
                current = {"uid": "", "fn": "", "n": "", "emails": [], "phones": []}
            elif current is None:
                continue
            elif key == "END" and value.strip().upper() == "VCARD":
                records.append(self._to_record(current, len(records)))
                current = None
            elif key == "UID":
                current["uid"] = value.strip()
            elif key == "FN":
                current["fn"] = _unescape_vcard_value(value)
            elif key == "N":
                components = [_unescape_vcard_value(part) for part in value.split(";")]
                family = components[0] if components else ""
                given = components[1] if len(components) > 1 else ""
                middle = components[2] if len(components) > 2 else ""
                current["n"] = " ".join(part for part in (given, middle, family) if part)
            elif key == "EMAIL":
                current["emails"].append(_unescape_vcard_value(value))
            elif key == "TEL":
                current["phones"].append(_unescape_vcard_value(value))
        logger.debug("Read %d vCard(s) from %s", len(records), path)
        return records

    @staticmethod
    def _to_record(card: dict, idx: int) -> RawRecord:
        name = card["fn"] or card["n"]
        return RawRecord(
            source_id=card["uid"] or str(idx),
            name=name or None,
            emails=list(card["emails"]),
            phones=list(card["phones"]),
        )
