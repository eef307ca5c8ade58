"""
SmartCRM - Field Similarity
Similarity scores (0.0-1.0) between two contacts' email, name, phone and
company, plus the comprehensive mean used by the duplicate detector.

Edit distance comes from rapidfuzz; the similarity ratio is
(len(longer) - distance) / len(longer).
"""

import re

from rapidfuzz.distance import Levenshtein


_NON_DIGIT = re.compile(r"\D")
_PLUS_TAG = re.compile(r"\+.*@")
_WHITESPACE = re.compile(r"\s+")
_NON_NAME_CHARS = re.compile(r"[^a-z\s]")

TOKEN_MATCH_THRESHOLD = 0.8
DOMAIN_TYPO_THRESHOLD = 0.8


# ─── STRING HELPERS ───────────────────────────────────────────

def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost edit distance between two strings."""
    return Levenshtein.distance(a or "", b or "")


def string_similarity(a: str, b: str) -> float:
    """Levenshtein similarity normalized by the longer string's length.

    Identical strings (including two empty ones) score 1.0; an empty string
    against a non-empty one scores 0.0.
    """
    a = a or ""
    b = b or ""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    longest = max(len(a), len(b))
    distance = levenshtein_distance(a, b)
    return (longest - distance) / longest


def normalize_name(name: str) -> str:
    """Lowercase, trim, collapse whitespace and keep only letters and spaces."""
    name = _NON_NAME_CHARS.sub("", (name or "").lower())
    return _WHITESPACE.sub(" ", name).strip()


def normalize_email(email: str) -> str:
    """Lowercase and strip a +tag from the local part."""
    return _PLUS_TAG.sub("@", (email or "").lower(), count=1)


def normalize_phone(phone: str) -> str:
    """Digits only."""
    return _NON_DIGIT.sub("", phone or "")


def _domain(email: str) -> str:
    if "@" not in email:
        return ""
    return email.split("@", 1)[1].strip().lower()


# ─── FIELD SIMILARITY ─────────────────────────────────────────

def email_similarity(email1: str, email2: str) -> float:
    """Score two addresses.

    1.0 exact, 0.9 same address ignoring case and +tags, 0.7 same domain,
    0.6 near-identical domain (likely typo), else 0.
    """
    if not email1 or not email2:
        return 0.0
    if email1 == email2:
        return 1.0

    if normalize_email(email1) == normalize_email(email2):
        return 0.9

    domain1 = _domain(email1)
    domain2 = _domain(email2)
    if not domain1 or not domain2:
        return 0.0

    if domain1 == domain2:
        return 0.7

    if string_similarity(domain1, domain2) > DOMAIN_TYPO_THRESHOLD:
        return 0.6

    return 0.0


def name_similarity(name1: str, name2: str) -> float:
    """Score two person names.

    Equal normalized names score 1.0. Names with the same number of tokens
    score the fraction of tokens in name1 that closely match some token in
    name2. Anything else falls back to whole-string similarity.
    """
    if not name1 or not name2:
        return 0.0

    normalized1 = normalize_name(name1)
    normalized2 = normalize_name(name2)
    if not normalized1 or not normalized2:
        return 0.0

    if normalized1 == normalized2:
        return 1.0

    parts1 = normalized1.split(" ")
    parts2 = normalized2.split(" ")

    if len(parts1) == len(parts2):
        matching = sum(
            1 for p1 in parts1
            if any(string_similarity(p1, p2) > TOKEN_MATCH_THRESHOLD for p2 in parts2)
        )
        return matching / len(parts1)

    return string_similarity(normalized1, normalized2)


def phone_similarity(phone1: str, phone2: str) -> float:
    """Score two phone numbers by their digits.

    Equal digits score 1.0. Two 10-digit numbers score 0.9 (assumed to be
    reformatted entries of the same line), as do two 11-digit numbers that
    differ only in the leading country digit.
    """
    digits1 = normalize_phone(phone1)
    digits2 = normalize_phone(phone2)
    if not digits1 or not digits2:
        return 0.0

    if digits1 == digits2:
        return 1.0

    if len(digits1) == 10 and len(digits2) == 10:
        return 0.9

    if len(digits1) == 11 and len(digits2) == 11 and digits1[1:] == digits2[1:]:
        return 0.9

    return 0.0


def company_similarity(company1: str, company2: str) -> float:
    if not company1 or not company2:
        return 0.0
    return string_similarity(company1.strip().lower(), company2.strip().lower())


# ─── CONTACT-LEVEL ────────────────────────────────────────────

def contact_name(contact: dict) -> str:
    """Full name of a contact: `name`, else first and last name joined."""
    name = (contact.get("name") or "").strip()
    if name:
        return name
    parts = [contact.get("first_name") or "", contact.get("last_name") or ""]
    return " ".join(p.strip() for p in parts if p and p.strip())


def comprehensive_similarity(contact1: dict, contact2: dict,
                             include_company: bool = False) -> float:
    """Mean similarity over the fields both contacts carry.

    Email, name and phone are compared when present on both sides; company
    joins them when include_company is set. No shared field scores 0.
    """
    scores = []

    if contact1.get("email") and contact2.get("email"):
        scores.append(email_similarity(contact1["email"], contact2["email"]))

    name1 = contact_name(contact1)
    name2 = contact_name(contact2)
    if name1 and name2:
        scores.append(name_similarity(name1, name2))

    if contact1.get("phone") and contact2.get("phone"):
        scores.append(phone_similarity(contact1["phone"], contact2["phone"]))

    if include_company and contact1.get("company") and contact2.get("company"):
        scores.append(company_similarity(contact1["company"], contact2["company"]))

    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def match_reason(contact1: dict, contact2: dict, similarity: float) -> str:
    """Explain why two contacts were paired."""
    email1, email2 = contact1.get("email"), contact2.get("email")
    if email1 and email1 == email2:
        return "exact_email_match"

    phone1, phone2 = contact1.get("phone"), contact2.get("phone")
    if phone1 and phone1 == phone2:
        return "exact_phone_match"

    name1, name2 = contact_name(contact1), contact_name(contact2)
    if name1 and name1 == name2:
        return "exact_name_match"

    if similarity > 0.8:
        return "high_similarity"
    if similarity > 0.6:
        return "medium_similarity"
    return "low_similarity"
