from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from .models import PersonEntity, RawRecord


class ContactSource(Protocol):
    def fetch_all(self) -> List[RawRecord]:
        """Return every record in the address book.

        Raises SourceUnavailableError when the platform refuses access.
        """
        ...


class PersonStore(Protocol):
    def get_all(self) -> List[PersonEntity]: ...

    def create(self, fields: Dict[str, Any]) -> PersonEntity: ...

    def update(self, person_id: str, fields: Dict[str, Any]) -> Optional[PersonEntity]:
        """Apply ``fields`` to an existing person; ``None`` if the id is gone."""
        ...
