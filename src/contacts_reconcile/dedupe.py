from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .errors import ConfigError
from .models import CandidateRecord, DedupeConflict, DedupeReport
from .normalization import normalize_name_key
from .similarity import NameMatcher

logger = logging.getLogger(__name__)

CONFLICT_MERGE = "merge"
CONFLICT_FIRST = "first"
CONFLICT_POLICIES = (CONFLICT_MERGE, CONFLICT_FIRST)


class BatchDeduplicator:
    """Greedy left-to-right clustering of one batch of candidates.

    Only clusters accepted earlier in the pass can absorb a candidate, so the
    partition depends on input order and is deterministic for a given order.
    A candidate joins the first cluster that shares one of its emails, else the
    first cluster whose indexed name fuzzy-matches, else it starts a new one.

    When one candidate's emails point at several clusters at once the event is
    recorded as a :class:`DedupeConflict`. With the ``merge`` policy those
    clusters are folded together into the earliest one; with ``first`` the
    candidate joins the cluster found first and the others stay apart.
    """

    def __init__(
        self, matcher: Optional[NameMatcher] = None, conflict_policy: str = CONFLICT_MERGE
    ):
        if conflict_policy not in CONFLICT_POLICIES:
            raise ConfigError(
                f"unknown conflict policy {conflict_policy!r}; expected one of {CONFLICT_POLICIES}"
            )
        self.matcher = matcher or NameMatcher()
        self.conflict_policy = conflict_policy

    def run(self, candidates: Iterable[CandidateRecord]) -> DedupeReport:
        clusters: List[CandidateRecord] = []
        parent: Dict[int, int] = {}
        email_index: Dict[str, int] = {}
        name_index: Dict[str, int] = {}
        conflicts: List[DedupeConflict] = []

        def find(x: int) -> int:
            if parent[x] != x:
                parent[x] = find(parent[x])
            return parent[x]

        def merge_into(slot: int, incoming: CandidateRecord) -> None:
            for email in clusters[slot].absorb(incoming):
                email_index.setdefault(email, slot)

        seen = 0
        for original in candidates:
            seen += 1
            candidate = original.replace(
                emails=list(original.emails),
                phones=list(original.phones),
                source_ids=list(original.source_ids),
            )

            hits: List[int] = []
            hit_emails: List[str] = []
            for email in candidate.emails:
                slot = email_index.get(email)
                if slot is None:
                    continue
                root = find(slot)
                hit_emails.append(email)
                if root not in hits:
                    hits.append(root)

            if hits:
                target = hits[0]
                if len(hits) > 1:
                    conflicts.append(self._conflict(candidate, hits, hit_emails, clusters))
                    if self.conflict_policy == CONFLICT_MERGE:
                        target = min(hits)
                        for other in hits:
                            if other == target:
                                continue
                            merge_into(target, clusters[other])
                            parent[other] = target
                merge_into(target, candidate)
                continue

            key = self.matcher.first_match(candidate.name, name_index.keys())
            if key is not None:
                merge_into(find(name_index[key]), candidate)
                continue

            slot = len(clusters)
            clusters.append(candidate)
            parent[slot] = slot
            for email in candidate.emails:
                email_index.setdefault(email, slot)
            name_key = normalize_name_key(candidate.name)
            if name_key:
                name_index.setdefault(name_key, slot)

        accepted = [clusters[slot] for slot in range(len(clusters)) if find(slot) == slot]
        logger.debug("Deduplicated %d candidate(s) into %d", seen, len(accepted))
        return DedupeReport(candidates=accepted, conflicts=conflicts)

    def _conflict(
        self,
        candidate: CandidateRecord,
        hits: List[int],
        hit_emails: List[str],
        clusters: List[CandidateRecord],
    ) -> DedupeConflict:
        conflict = DedupeConflict(
            source_ids=list(candidate.source_ids),
            cluster_names=[clusters[slot].name for slot in hits],
            emails=hit_emails,
            resolution=self.conflict_policy,
        )
        logger.warning(
            "Contact %s shares emails with %d separate contacts (%s); resolved by %s",
            ",".join(conflict.source_ids) or candidate.name or "unknown",
            len(hits),
            ", ".join(hit_emails[:5]),
            self.conflict_policy,
        )
        return conflict


def dedupe(
    candidates: Iterable[CandidateRecord],
    matcher: Optional[NameMatcher] = None,
    conflict_policy: str = CONFLICT_MERGE,
) -> List[CandidateRecord]:
    return BatchDeduplicator(matcher, conflict_policy).run(candidates).candidates
