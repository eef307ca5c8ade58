"""
Unit tests for field similarity.
Edit-distance ratio, per-field scoring rules, and the comprehensive mean.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

import pytest

from smartcrm.agents.similarity import (
    company_similarity,
    comprehensive_similarity,
    contact_name,
    email_similarity,
    levenshtein_distance,
    match_reason,
    name_similarity,
    normalize_email,
    normalize_name,
    normalize_phone,
    phone_similarity,
    string_similarity,
)


# ─── STRING HELPERS ───────────────────────────────────────────

def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


def test_string_similarity_ratio():
    assert string_similarity("kitten", "sitting") == pytest.approx(4 / 7)


def test_string_similarity_identity_and_empty():
    assert string_similarity("abc", "abc") == 1.0
    assert string_similarity("", "") == 1.0
    assert string_similarity("abc", "") == 0.0
    assert string_similarity("", "abc") == 0.0


def test_string_similarity_symmetric():
    pairs = [("gmail.com", "gmial.com"), ("jonathan", "jonathon"), ("acme", "globex")]
    for a, b in pairs:
        assert string_similarity(a, b) == string_similarity(b, a), f"{a} vs {b}"


def test_normalizers():
    assert normalize_name("  Mary-Jane   O'Neil ") == "maryjane oneil"
    assert normalize_email("John+News@Acme.com") == "john@acme.com"
    assert normalize_phone("+1 (555) 123-4567") == "15551234567"
    assert normalize_phone(None) == ""


# ─── EMAIL ────────────────────────────────────────────────────

def test_email_exact():
    assert email_similarity("john@acme.com", "john@acme.com") == 1.0


def test_email_plus_tag_and_case():
    assert email_similarity("John+news@acme.com", "john@acme.com") == 0.9


def test_email_same_domain():
    assert email_similarity("jane@acme.com", "john@acme.com") == 0.7


def test_email_domain_typo():
    # acme.com vs acme.co is one edit on eight characters
    assert email_similarity("john@acme.com", "jdoe@acme.co") == 0.6


def test_email_unrelated():
    assert email_similarity("john@acme.com", "x@other.org") == 0.0


def test_email_missing_or_domainless():
    assert email_similarity("", "john@acme.com") == 0.0
    assert email_similarity(None, None) == 0.0
    assert email_similarity("john", "jane") == 0.0
    assert email_similarity("john", "john") == 1.0


# ─── NAME ─────────────────────────────────────────────────────

def test_name_normalized_equal():
    assert name_similarity("John Smith", "john  smith") == 1.0


def test_name_token_fraction():
    # "jon" vs "john" is 0.75, below the token threshold; "smith" matches
    assert name_similarity("Jon Smith", "John Smith") == 0.5


def test_name_close_tokens_all_match():
    assert name_similarity("Jonathan Smith", "Jonathon Smith") == 1.0


def test_name_different_token_counts_uses_whole_string():
    assert name_similarity("John Smith", "John A Smith") == pytest.approx(10 / 12)


def test_name_empty():
    assert name_similarity("", "John") == 0.0
    assert name_similarity("123", "456") == 0.0


# ─── PHONE ────────────────────────────────────────────────────

def test_phone_same_digits_different_format():
    assert phone_similarity("(555) 123-4567", "555.123.4567") == 1.0


def test_phone_ten_digit_heuristic():
    assert phone_similarity("5551234567", "5559876543") == 0.9


def test_phone_country_digit_differs():
    assert phone_similarity("15551234567", "25551234567") == 0.9


def test_phone_mismatched_lengths():
    assert phone_similarity("+1 555 123 4567", "5551234567") == 0.0


def test_phone_empty():
    assert phone_similarity("", "5551234567") == 0.0
    assert phone_similarity("ext.", "5551234567") == 0.0


# ─── CONTACT-LEVEL ────────────────────────────────────────────

def test_contact_name_fallbacks():
    assert contact_name({"name": " Ann Lee "}) == "Ann Lee"
    assert contact_name({"first_name": "Ann", "last_name": "Lee"}) == "Ann Lee"
    assert contact_name({"first_name": "Ann"}) == "Ann"
    assert contact_name({}) == ""


def test_company_similarity():
    assert company_similarity("Acme", "acme ") == 1.0
    assert company_similarity("Acme", "Acme Inc") == 0.5
    assert company_similarity("", "Acme") == 0.0


def test_comprehensive_mean_over_shared_fields():
    c1 = {"name": "John Smith", "email": "john@acme.com", "phone": "5551234567"}
    c2 = {"name": "John Smith", "email": "john@acme.com"}
    assert comprehensive_similarity(c1, c2) == 1.0


def test_comprehensive_no_shared_fields():
    assert comprehensive_similarity({"email": "a@x.com"}, {"phone": "5551234567"}) == 0.0


def test_comprehensive_company_opt_in():
    c1 = {"name": "Ann Lee", "company": "Acme"}
    c2 = {"name": "Ann Lee", "company": "Acme Inc"}
    assert comprehensive_similarity(c1, c2) == 1.0
    assert comprehensive_similarity(c1, c2, include_company=True) == pytest.approx(0.75)


def test_comprehensive_bounds_and_symmetry():
    contacts = [
        {"name": "John Smith", "email": "john@acme.com", "phone": "555-123-4567"},
        {"name": "Jon Smyth", "email": "jsmyth@acme.co", "phone": "555 123 4567"},
        {"first_name": "Mary", "last_name": "Jones", "email": "mary@other.org"},
    ]
    for a in contacts:
        for b in contacts:
            score = comprehensive_similarity(a, b)
            assert 0.0 <= score <= 1.0
            assert score == pytest.approx(comprehensive_similarity(b, a))


def test_match_reason():
    assert match_reason({"email": "a@x.com"}, {"email": "a@x.com"}, 1.0) == "exact_email_match"
    assert match_reason({"phone": "555"}, {"phone": "555"}, 1.0) == "exact_phone_match"
    assert match_reason({"name": "Ann"}, {"name": "Ann"}, 1.0) == "exact_name_match"
    assert match_reason({}, {}, 0.85) == "high_similarity"
    assert match_reason({}, {}, 0.7) == "medium_similarity"
    assert match_reason({}, {}, 0.2) == "low_similarity"
