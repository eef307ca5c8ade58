"""
SmartCRM - Duplicate Contact Detection
Groups likely-duplicate contacts by email, name, phone, or all of them at once.

Grouping is a single greedy pass: each contact not yet consumed becomes the
master of a candidate group and absorbs every later unconsumed contact whose
similarity meets the threshold. A contact lands in at most one group. This is
O(n^2) and is not a transitive closure: if A~B and B~C but A!~C, C is only
grouped with A's group when it matches A directly.

Usage:
    from smartcrm.agents.duplicate_detector import detect_duplicates

    result = detect_duplicates(contacts, threshold=0.8, detection_type="email")
    for group in result["groups"]:
        print(group["master"]["email"], len(group["duplicates"]))
"""

import logging
from collections import Counter
from typing import Callable, Optional

from smartcrm.agents.similarity import (
    comprehensive_similarity,
    contact_name,
    email_similarity,
    match_reason,
    name_similarity,
    phone_similarity,
)

logger = logging.getLogger("smartcrm.agents.duplicate_detector")

DEFAULT_THRESHOLD = 0.8
DETECTION_TYPES = ("email", "name", "phone", "comprehensive")


# ─── GREEDY GROUPING ──────────────────────────────────────────

def _group_by_field(contacts: list, threshold: float, field: str,
                    value_of: Callable[[dict], str],
                    similarity_fn: Callable[[str, str], float]) -> list:
    """Greedy grouping on one field. Contacts without the field are skipped."""
    groups = []
    consumed = set()

    for i, contact in enumerate(contacts):
        if i in consumed:
            continue
        value = value_of(contact)
        if not value:
            continue

        duplicates = []
        for j in range(i + 1, len(contacts)):
            if j in consumed:
                continue
            other_value = value_of(contacts[j])
            if not other_value:
                continue

            similarity = similarity_fn(value, other_value)
            if similarity >= threshold:
                duplicates.append({
                    "contact": contacts[j],
                    "similarity": similarity,
                    "match_reason": "exact_match" if similarity == 1 else f"similar_{field}",
                })
                consumed.add(j)

        if duplicates:
            consumed.add(i)
            best = max(d["similarity"] for d in duplicates)
            groups.append({
                "master": contact,
                "duplicates": duplicates,
                "similarity": best,
                "match_reason": f"exact_{field}_match" if best == 1 else f"similar_{field}",
            })

    return groups


def detect_email_duplicates(contacts: list, threshold: float = DEFAULT_THRESHOLD) -> list:
    return _group_by_field(contacts, threshold, "email",
                           lambda c: c.get("email") or "", email_similarity)


def detect_name_duplicates(contacts: list, threshold: float = DEFAULT_THRESHOLD) -> list:
    return _group_by_field(contacts, threshold, "name", contact_name, name_similarity)


def detect_phone_duplicates(contacts: list, threshold: float = DEFAULT_THRESHOLD) -> list:
    return _group_by_field(contacts, threshold, "phone",
                           lambda c: c.get("phone") or "", phone_similarity)


def detect_comprehensive_duplicates(contacts: list, threshold: float = DEFAULT_THRESHOLD,
                                    include_company: bool = False) -> list:
    """Greedy grouping on the mean of every field both contacts share."""
    groups = []
    consumed = set()

    for i, contact in enumerate(contacts):
        if i in consumed:
            continue

        duplicates = []
        for j in range(i + 1, len(contacts)):
            if j in consumed:
                continue
            other = contacts[j]
            similarity = comprehensive_similarity(contact, other, include_company=include_company)
            if similarity >= threshold:
                duplicates.append({
                    "contact": other,
                    "similarity": similarity,
                    "match_reason": match_reason(contact, other, similarity),
                })
                consumed.add(j)

        if duplicates:
            consumed.add(i)
            groups.append({
                "master": contact,
                "duplicates": duplicates,
                "similarity": max(d["similarity"] for d in duplicates),
                "match_reason": "multiple_criteria",
            })

    return groups


# ─── ANALYSIS ─────────────────────────────────────────────────

def analyze_duplicates(groups: list, total_contacts: int) -> dict:
    """Summarize duplicate density and rate overall data quality.

    duplicate_rate is the percentage of all contacts that are duplicates of
    some master. average_group_size is the mean number of duplicates per group.
    """
    analysis = {
        "duplicate_rate": 0.0,
        "average_group_size": 0.0,
        "most_common_match_reason": "",
        "data_quality": "",
        "notes": [],
    }

    if not groups:
        analysis["data_quality"] = "excellent"
        analysis["notes"].append("No duplicates found - data quality is good")
        return analysis

    total_duplicates = sum(len(g["duplicates"]) for g in groups)
    if total_contacts > 0:
        analysis["duplicate_rate"] = round(total_duplicates / total_contacts * 100, 2)
    analysis["average_group_size"] = round(total_duplicates / len(groups), 2)

    # Counter.most_common keeps first-seen order on ties
    reasons = Counter(g["match_reason"] for g in groups)
    analysis["most_common_match_reason"] = reasons.most_common(1)[0][0]

    rate = analysis["duplicate_rate"]
    if rate < 5:
        analysis["data_quality"] = "good"
    elif rate < 15:
        analysis["data_quality"] = "fair"
    else:
        analysis["data_quality"] = "poor"

    analysis["notes"].append(
        f"{total_duplicates} duplicate records across {len(groups)} groups"
    )
    return analysis


def generate_recommendations(groups: list, analysis: dict) -> list:
    if not groups:
        return ["Data appears to be clean with no duplicates detected"]

    recommendations = []
    if analysis["duplicate_rate"] > 20:
        recommendations.append("High duplicate rate detected - implement stricter data validation")
    if analysis["most_common_match_reason"] == "exact_email_match":
        recommendations.append("Implement email uniqueness constraint at database level")
    if analysis["average_group_size"] > 3:
        recommendations.append("Large duplicate groups found - review data import processes")

    recommendations.append(f"Merge {len(groups)} duplicate groups to improve data quality")
    recommendations.append("Set up automated duplicate detection for new records")
    return recommendations


# ─── ENTRY POINT ──────────────────────────────────────────────

def detect_duplicates(contacts: list, threshold: Optional[float] = None,
                      detection_type: str = "comprehensive",
                      include_company: bool = False) -> dict:
    """Run duplicate detection and wrap the groups in a report.

    Args:
        contacts: Contact dicts (name or first_name/last_name, email, phone, company).
        threshold: Minimum similarity to group a pair (default 0.8).
        detection_type: "email", "name", "phone" or "comprehensive".
            Unknown values fall back to "comprehensive".
        include_company: Add company-name similarity to the comprehensive mean.

    Returns:
        {"groups": [...], "summary": {...}, "analysis": {...}, "recommendations": [...]}
    """
    threshold = DEFAULT_THRESHOLD if threshold is None else threshold
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be between 0 and 1, got {threshold}")

    if detection_type not in DETECTION_TYPES:
        logger.warning("Unknown detection type '%s', using comprehensive", detection_type)
        detection_type = "comprehensive"

    if detection_type == "email":
        groups = detect_email_duplicates(contacts, threshold)
    elif detection_type == "name":
        groups = detect_name_duplicates(contacts, threshold)
    elif detection_type == "phone":
        groups = detect_phone_duplicates(contacts, threshold)
    else:
        groups = detect_comprehensive_duplicates(contacts, threshold, include_company)

    total_duplicates = sum(len(g["duplicates"]) for g in groups)
    summary = {
        "total_contacts": len(contacts),
        "duplicate_groups": len(groups),
        "total_duplicates": total_duplicates,
        "unique_contacts": len(contacts) - total_duplicates,
        "detection_type": detection_type,
        "threshold": threshold,
    }

    analysis = analyze_duplicates(groups, len(contacts))
    recommendations = generate_recommendations(groups, analysis)

    logger.info("Duplicate detection (%s): %d contacts, %d groups, %d duplicates",
                detection_type, len(contacts), len(groups), total_duplicates,
                extra={"detection_type": detection_type})

    return {
        "groups": groups,
        "summary": summary,
        "analysis": analysis,
        "recommendations": recommendations,
    }
