from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .normalization import normalize_email, normalize_name_key

MAX_EDIT_DISTANCE = 2


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current[j] = min(
                current[j - 1] + 1,
                previous[j] + 1,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[-1]


def emails_match(a: Iterable[str], b: Iterable[str]) -> bool:
    left = {normalize_email(email) for email in a} - {""}
    right = {normalize_email(email) for email in b} - {""}
    return bool(left & right)


def exact_name_match(a: Optional[str], b: Optional[str]) -> bool:
    return normalize_name_key(a) == normalize_name_key(b)


def fuzzy_name_match(
    a: Optional[str], b: Optional[str], max_distance: int = MAX_EDIT_DISTANCE
) -> bool:
    key_a = normalize_name_key(a)
    key_b = normalize_name_key(b)
    if not key_a or not key_b:
        return False
    if exact_name_match(key_a, key_b):
        return True
    tokens_a = key_a.split(" ")
    tokens_b = key_b.split(" ")
    if len(tokens_a) >= 2 and len(tokens_b) >= 2:
        return tokens_a[0] == tokens_b[0] and tokens_a[-1] == tokens_b[-1]
    return levenshtein_distance(key_a, key_b) <= max_distance


@dataclass
class NameMatcher:
    max_distance: int = MAX_EDIT_DISTANCE

    def matches(self, a: Optional[str], b: Optional[str]) -> bool:
        return fuzzy_name_match(a, b, self.max_distance)

    def first_match(self, name: Optional[str], keys: Iterable[str]) -> Optional[str]:
        if not normalize_name_key(name):
            return None
        for key in keys:
            if self.matches(name, key):
                return key
        return None

