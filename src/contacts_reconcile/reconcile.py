from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .interfaces import PersonStore
from .models import CandidateRecord, ImportResult, PersonEntity
from .normalization import collapse_whitespace
from .similarity import NameMatcher, emails_match

logger = logging.getLogger(__name__)

DEFAULT_RELATIONSHIP = "acquaintance"
PROVENANCE_TAG = "imported-from-contacts"
FALLBACK_FIRST_NAME = "Unknown"


@dataclass
class ImportSettings:
    default_relationship: str = DEFAULT_RELATIONSHIP
    provenance_tag: str = PROVENANCE_TAG
    fallback_first_name: str = FALLBACK_FIRST_NAME


def split_name(name: str, fallback_first_name: str = FALLBACK_FIRST_NAME) -> Tuple[str, str]:
    tokens = (name or "").split()
    if not tokens:
        return fallback_first_name, ""
    return tokens[0], " ".join(tokens[1:])


class StoreReconciler:
    """Merge deduplicated candidates into the person store.

    A candidate matches an existing person by email first, then by fuzzy
    name. Matches only ever fill gaps: email and phone are set when empty and
    the name is replaced only by a strictly longer one, so a second run over
    the same input changes nothing.
    """

    def __init__(
        self,
        store: PersonStore,
        settings: Optional[ImportSettings] = None,
        matcher: Optional[NameMatcher] = None,
    ):
        self.store = store
        self.settings = settings or ImportSettings()
        self.matcher = matcher or NameMatcher()

    def reconcile(
        self, candidates: Iterable[CandidateRecord], existing_persons: Iterable[PersonEntity]
    ) -> ImportResult:
        result = ImportResult()
        persons: List[PersonEntity] = list(existing_persons)
        # person id -> names of earlier candidates in this run that matched it by name
        name_claims: Dict[str, List[str]] = {}

        for candidate in candidates:
            try:
                person = self.find_by_email(candidate, persons)
                matched_by_name = False
                if person is None:
                    person = self.find_by_name(candidate, persons)
                    matched_by_name = person is not None
                if person is None:
                    persons.append(self._create(candidate))
                    result.imported += 1
                    continue
                changes = self.diff(person, candidate, name_claims.get(person.id, ()))
                if matched_by_name:
                    name_claims.setdefault(person.id, []).append(candidate.name)
                if not changes:
                    result.skipped += 1
                    continue
                refreshed = self.store.update(person.id, changes)
                index = persons.index(person)
                if refreshed is None:
                    logger.info("Person %s disappeared before update; skipping", person.id)
                    persons.pop(index)
                    result.skipped += 1
                    continue
                persons[index] = refreshed
                result.updated += 1
                logger.debug("Updated person %s with %s", person.id, sorted(changes))
            except Exception:
                logger.exception("Failed to reconcile contact %r", candidate.name)
                result.skipped += 1

        logger.info(
            "Reconciled %d contact(s): %d imported, %d updated, %d skipped",
            result.total,
            result.imported,
            result.updated,
            result.skipped,
        )
        return result

    def find_existing(
        self, candidate: CandidateRecord, persons: List[PersonEntity]
    ) -> Optional[PersonEntity]:
        person = self.find_by_email(candidate, persons)
        if person is None:
            person = self.find_by_name(candidate, persons)
        return person

    def find_by_email(
        self, candidate: CandidateRecord, persons: List[PersonEntity]
    ) -> Optional[PersonEntity]:
        for email in candidate.emails:
            for person in persons:
                if person.email and emails_match([email], [person.email]):
                    return person
        return None

    def find_by_name(
        self, candidate: CandidateRecord, persons: List[PersonEntity]
    ) -> Optional[PersonEntity]:
        if not candidate.name:
            return None
        for person in persons:
            full_name = person.full_name
            if full_name and self.matcher.matches(candidate.name, full_name):
                return person
        return None

    def diff(
        self,
        person: PersonEntity,
        candidate: CandidateRecord,
        claimed_names: Sequence[str] = (),
    ) -> Dict[str, Any]:
        """Return the gap-filling changes ``candidate`` brings to ``person``.

        ``claimed_names`` are names that already matched ``person`` by name
        earlier in the run. A longer name that would stop any of them from
        matching is not applied, otherwise the next run would no longer find
        ``person`` for those contacts and would create duplicates.
        """
        changes: Dict[str, Any] = {}
        if candidate.name and len(candidate.name) > len(collapse_whitespace(person.full_name)):
            blocked = [
                name for name in claimed_names if not self.matcher.matches(name, candidate.name)
            ]
            if blocked:
                logger.debug(
                    "Keeping name of person %s; %r would no longer match %s",
                    person.id,
                    candidate.name,
                    blocked,
                )
            else:
                first_name, last_name = split_name(
                    candidate.name, self.settings.fallback_first_name
                )
                changes["first_name"] = first_name
                changes["last_name"] = last_name
        if not person.email and candidate.primary_email:
            changes["email"] = candidate.primary_email
        if not person.phone and candidate.primary_phone:
            changes["phone"] = candidate.primary_phone
        return changes

    def _create(self, candidate: CandidateRecord) -> PersonEntity:
        first_name, last_name = split_name(candidate.name, self.settings.fallback_first_name)
        person = self.store.create(
            {
                "first_name": first_name,
                "last_name": last_name,
                "email": candidate.primary_email,
                "phone": candidate.primary_phone,
                "relationship": self.settings.default_relationship,
                "tags": [self.settings.provenance_tag],
            }
        )
        logger.debug("Created person %s for %s", person.id, candidate.name or "unnamed contact")
        return person


def reconcile(
    candidates: Iterable[CandidateRecord],
    existing_persons: Iterable[PersonEntity],
    store: PersonStore,
    settings: Optional[ImportSettings] = None,
) -> ImportResult:
    return StoreReconciler(store, settings).reconcile(candidates, existing_persons)
