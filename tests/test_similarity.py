import pytest

from contacts_reconcile.similarity import (
    NameMatcher,
    emails_match,
    exact_name_match,
    fuzzy_name_match,
    levenshtein_distance,
)


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("", "", 0),
        ("abc", "", 3),
        ("kitten", "sitting", 3),
        ("smith", "smyth", 1),
        ("ab", "ba", 2),
    ],
)
def test_levenshtein_distance(a, b, expected):
    assert levenshtein_distance(a, b) == expected
    assert levenshtein_distance(b, a) == expected


def test_emails_match_requires_shared_address():
    assert emails_match(["a@x.com", "b@x.com"], ["B@X.com"])
    assert not emails_match(["a@x.com"], ["c@x.com"])
    assert not emails_match([], [])


def test_exact_name_match_ignores_case_and_spacing():
    assert exact_name_match("Ann  Lee", "ann lee")
    assert not exact_name_match("Ann Lee", "Ann Li")


def test_multi_token_names_compare_first_and_last_literally():
    assert not fuzzy_name_match("Jon Smith", "John Smith")
    assert fuzzy_name_match("John Q Smith", "John Smith")
    assert fuzzy_name_match("John Quincy Smith", "john r. smith")
    assert not fuzzy_name_match("Al Chen", "Al Chan")


def test_single_token_names_use_edit_distance():
    assert fuzzy_name_match("Smith", "Smyth")
    assert fuzzy_name_match("Smith", "Smythe")
    assert not fuzzy_name_match("Smith", "Smother")


def test_mixed_token_counts_fall_back_to_edit_distance():
    assert fuzzy_name_match("Cher", "Che r")
    assert not fuzzy_name_match("Madonna", "Madonna Ciccone")


def test_empty_names_never_fuzzy_match():
    assert not fuzzy_name_match("", "Al")
    assert not fuzzy_name_match(None, "")


def test_name_matcher_threshold_and_first_match():
    strict = NameMatcher(max_distance=0)
    assert not strict.matches("Smith", "Smyth")
    matcher = NameMatcher()
    assert matcher.first_match("smyth", ["jones", "smith", "smithe"]) == "smith"
    assert matcher.first_match("", ["jones"]) is None
