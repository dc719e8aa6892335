from __future__ import annotations

import csv
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from .errors import StoreReadError, StoreWriteError
from .models import PersonEntity

logger = logging.getLogger(__name__)

PERSON_COLUMNS = [
    "id",
    "first_name",
    "last_name",
    "email",
    "phone",
    "relationship",
    "tags",
    "created_at",
    "updated_at",
]
_MUTABLE_FIELDS = {"first_name", "last_name", "email", "phone", "relationship", "tags"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - _MUTABLE_FIELDS
    if unknown:
        raise StoreWriteError(f"unsupported person field(s): {', '.join(sorted(unknown))}")
    cleaned = dict(fields)
    if "tags" in cleaned:
        cleaned["tags"] = list(cleaned["tags"] or [])
    return cleaned


def _new_person(fields: Dict[str, Any]) -> PersonEntity:
    cleaned = _clean_fields(fields)
    now = _now()
    return PersonEntity(
        id=str(uuid.uuid4()),
        first_name=cleaned.get("first_name") or "",
        last_name=cleaned.get("last_name") or "",
        email=cleaned.get("email") or None,
        phone=cleaned.get("phone") or None,
        relationship=cleaned.get("relationship") or "acquaintance",
        tags=cleaned.get("tags", []),
        created_at=now,
        updated_at=now,
    )


class InMemoryPersonStore:
    """Dict-backed store; each call is committed on its own."""

    def __init__(self, persons: Optional[List[PersonEntity]] = None):
        self._persons: Dict[str, PersonEntity] = {}
        self._lock = threading.Lock()
        for person in persons or []:
            self._persons[person.id] = person

    def get_all(self) -> List[PersonEntity]:
        with self._lock:
            return list(self._persons.values())

    def get(self, person_id: str) -> Optional[PersonEntity]:
        with self._lock:
            return self._persons.get(person_id)

    def create(self, fields: Dict[str, Any]) -> PersonEntity:
        person = _new_person(fields)
        with self._lock:
            self._persons[person.id] = person
        return person

    def update(self, person_id: str, fields: Dict[str, Any]) -> Optional[PersonEntity]:
        cleaned = _clean_fields(fields)
        with self._lock:
            existing = self._persons.get(person_id)
            if existing is None:
                return None
            updated = existing.replace(updated_at=_now(), **cleaned)
            self._persons[person_id] = updated
            return updated

    def delete(self, person_id: str) -> bool:
        with self._lock:
            return self._persons.pop(person_id, None) is not None


def _parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None


def _row_to_person(row: Dict[str, str]) -> PersonEntity:
    tags = [tag for tag in (row.get("tags") or "").split("|") if tag]
    return PersonEntity(
        id=row.get("id", ""),
        first_name=row.get("first_name", ""),
        last_name=row.get("last_name", ""),
        email=row.get("email") or None,
        phone=row.get("phone") or None,
        relationship=row.get("relationship") or "acquaintance",
        tags=tags,
        created_at=_parse_timestamp(row.get("created_at", "")),
        updated_at=_parse_timestamp(row.get("updated_at", "")),
    )


def _person_to_row(person: PersonEntity) -> Dict[str, str]:
    return {
        "id": person.id,
        "first_name": person.first_name,
        "last_name": person.last_name,
        "email": person.email or "",
        "phone": person.phone or "",
        "relationship": person.relationship,
        "tags": "|".join(person.tags),
        "created_at": person.created_at.isoformat() if person.created_at else "",
        "updated_at": person.updated_at.isoformat() if person.updated_at else "",
    }


class CsvPersonStore:
    """Person store persisted to a CSV file.

    The file is re-read on every call and rewritten after every create or
    update, so each write is committed independently of the rest of a batch.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> List[PersonEntity]:
        if not os.path.exists(self.path):
            return []
        try:
            df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            logger.info("People file %s is empty; starting with no persons", self.path)
            return []
        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as exc:
            raise StoreReadError(f"could not read {self.path}: {exc}") from exc
        return [_row_to_person(row) for row in df.to_dict(orient="records")]

    def _write(self, persons: List[PersonEntity]) -> None:
        df = pd.DataFrame([_person_to_row(person) for person in persons], columns=PERSON_COLUMNS)
        try:
            df.to_csv(self.path, index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
        except OSError as exc:
            raise StoreWriteError(f"could not write {self.path}: {exc}") from exc

    def get_all(self) -> List[PersonEntity]:
        with self._lock:
            return self._read()

    def create(self, fields: Dict[str, Any]) -> PersonEntity:
        person = _new_person(fields)
        with self._lock:
            persons = self._read()
            persons.append(person)
            self._write(persons)
        return person

    def update(self, person_id: str, fields: Dict[str, Any]) -> Optional[PersonEntity]:
        cleaned = _clean_fields(fields)
        with self._lock:
            persons = self._read()
            for index, existing in enumerate(persons):
                if existing.id == person_id:
                    updated = existing.replace(updated_at=_now(), **cleaned)
                    persons[index] = updated
                    self._write(persons)
                    return updated
        return None
