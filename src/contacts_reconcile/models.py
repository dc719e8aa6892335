from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set


def _string_list(values: Any) -> List[str]:
    if values is None:
        return []
    if isinstance(values, str):
        return [values]
    return [str(value) for value in values if value is not None]


def _append_unique(target: List[str], values: Sequence[str]) -> List[str]:
    added: List[str] = []
    for value in values:
        if value and value not in target:
            target.append(value)
            added.append(value)
    return added


@dataclass(frozen=True)
class RawRecord:
    source_id: str
    name: Optional[str] = None
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "RawRecord":
        name = payload.get("name")
        return RawRecord(
            source_id=str(payload.get("source_id", payload.get("id", "")) or ""),
            name=None if name is None else str(name),
            emails=_string_list(payload.get("emails")),
            phones=_string_list(payload.get("phones")),
        )


@dataclass
class CandidateRecord:
    name: str = ""
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)
    source_ids: List[str] = field(default_factory=list)

    @property
    def email_set(self) -> Set[str]:
        return set(self.emails)

    @property
    def phone_set(self) -> Set[str]:
        return set(self.phones)

    @property
    def primary_email(self) -> Optional[str]:
        return self.emails[0] if self.emails else None

    @property
    def primary_phone(self) -> Optional[str]:
        return self.phones[0] if self.phones else None

    def absorb(self, other: "CandidateRecord") -> List[str]:
        """Fold ``other`` into this record and return the emails it contributed."""
        added_emails = _append_unique(self.emails, other.emails)
        _append_unique(self.phones, other.phones)
        _append_unique(self.source_ids, other.source_ids)
        if len(other.name) > len(self.name):
            self.name = other.name
        return added_emails

    def replace(self, **changes: Any) -> "CandidateRecord":
        return replace(self, **changes)


@dataclass(frozen=True)
class PersonEntity:
    id: str
    first_name: str
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    relationship: str = "acquaintance"
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def replace(self, **changes: Any) -> "PersonEntity":
        return replace(self, **changes)


@dataclass
class ImportResult:
    imported: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.imported + self.updated + self.skipped

    def to_dict(self) -> Dict[str, int]:
        return {"imported": self.imported, "updated": self.updated, "skipped": self.skipped}


@dataclass(frozen=True)
class DedupeConflict:
    """One incoming candidate whose emails hit more than one accepted cluster."""

    source_ids: List[str]
    cluster_names: List[str]
    emails: List[str]
    resolution: str


@dataclass
class DedupeReport:
    candidates: List[CandidateRecord] = field(default_factory=list)
    conflicts: List[DedupeConflict] = field(default_factory=list)
