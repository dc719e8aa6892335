from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from email_validator import EmailNotValidError, validate_email

from .models import CandidateRecord, RawRecord

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_PHONE_STRIP_RE = re.compile(r"[^\d]")


@dataclass
class NormalizationSettings:
    validate_emails: bool = False


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return ""


def collapse_whitespace(text: Optional[str]) -> str:
    return _WHITESPACE_RE.sub(" ", _as_text(text)).strip()


def normalize_display_name(name: Optional[str]) -> str:
    return collapse_whitespace(name)


def normalize_name_key(name: Optional[str]) -> str:
    return collapse_whitespace(name).lower()


def normalize_email(raw: Any) -> str:
    return _as_text(raw).strip().lower()


def normalize_phone(raw: Any) -> str:
    s = _as_text(raw).strip()
    if not s:
        return ""
    digits = _PHONE_STRIP_RE.sub("", s)
    if not digits:
        return ""
    return f"+{digits}" if s.startswith("+") else digits


def is_valid_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _unique(values: Iterable[str]) -> List[str]:
    out: List[str] = []
    for value in values:
        if value and value not in out:
            out.append(value)
    return out


def normalize_record(
    record: RawRecord, settings: Optional[NormalizationSettings] = None
) -> Optional[CandidateRecord]:
    settings = settings or NormalizationSettings()
    name = normalize_display_name(record.name)
    emails = _unique(normalize_email(email) for email in (record.emails or []))
    if settings.validate_emails and emails:
        invalid = [email for email in emails if not is_valid_email(email)]
        if invalid:
            logger.info(
                "Dropped %d invalid email(s) for %s -> %s",
                len(invalid),
                record.source_id or "unknown",
                ", ".join(invalid[:5]),
            )
            emails = [email for email in emails if email not in invalid]
    if not (name or emails):
        return None
    phones = _unique(normalize_phone(phone) for phone in (record.phones or []))
    return CandidateRecord(
        name=name,
        emails=emails,
        phones=phones,
        source_ids=[record.source_id] if record.source_id else [],
    )


def normalize(
    raw_records: Iterable[RawRecord], settings: Optional[NormalizationSettings] = None
) -> List[CandidateRecord]:
    candidates: List[CandidateRecord] = []
    dropped = 0
    for record in raw_records:
        try:
            candidate = normalize_record(record, settings)
        except (AttributeError, TypeError) as exc:
            logger.debug("Unreadable contact record %r: %s", record, exc)
            candidate = None
        if candidate is None:
            dropped += 1
            continue
        candidates.append(candidate)
    if dropped:
        logger.info("Skipped %d contact(s) with neither a name nor an email", dropped)
    return candidates
