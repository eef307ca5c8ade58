"""
SmartCRM - Smart Scoring Engine
Data-completeness score (0-100) for a single contact, the per-contact score
report (insights, recommendations, categories, tags), and bulk analysis.

Five weighted factors, each scored 0-100:
  email_quality         20%
  phone_completeness    15%
  company_completeness  25%
  social_profiles       20%
  engagement_history    20%
plus flat bonuses for the priority flag and recent activity.
"""

import logging
import re
import time
from datetime import datetime, timezone
from typing import Optional

from smartcrm.config import BULK_COST_PER_CONTACT, BULK_MS_PER_CONTACT
from smartcrm.agents.error_handler import log_pipeline_error
from smartcrm.agents.similarity import normalize_phone

logger = logging.getLogger("smartcrm.agents.smart_scorer")


FACTOR_WEIGHTS = {
    "email_quality": 0.20,
    "phone_completeness": 0.15,
    "company_completeness": 0.25,
    "social_profiles": 0.20,
    "engagement_history": 0.20,
}

PRIORITY_BONUS = 10
RECENT_ACTIVITY_BONUS = 5
RECENT_ACTIVITY_DAYS = 30

GRADE_BREAKPOINTS = [(90, "A"), (80, "B"), (70, "C"), (60, "D")]

FREE_MAIL_DOMAINS = {
    "gmail.com", "googlemail.com", "yahoo.com", "hotmail.com", "outlook.com",
    "live.com", "aol.com", "icloud.com", "me.com", "proton.me", "protonmail.com",
    "gmx.com", "mail.com", "yandex.com",
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[a-z]{2,}$", re.IGNORECASE)

ACTIVITY_FIELDS = ("last_activity", "last_activity_at", "last_contacted")


# ─── FACTOR SCORERS ───────────────────────────────────────────

def score_email_quality(email: Optional[str]) -> tuple:
    """Returns (score, detail)."""
    if not email:
        return 0, "no email"
    email = email.strip()
    if not _EMAIL_RE.match(email):
        return 30, "malformed email"
    domain = email.rsplit("@", 1)[1].lower()
    if domain in FREE_MAIL_DOMAINS:
        return 70, f"free-mail domain ({domain})"
    return 100, f"business domain ({domain})"


def score_phone_completeness(phone: Optional[str]) -> tuple:
    digits = normalize_phone(phone)
    if not digits:
        return 0, "no phone"
    if len(digits) >= 10:
        return 100, f"{len(digits)} digits"
    if len(digits) >= 7:
        return 60, f"{len(digits)} digits, missing area code"
    return 25, f"{len(digits)} digits, incomplete"


def score_company_completeness(contact: dict) -> tuple:
    score = 0
    present = []
    if contact.get("company"):
        score += 60
        present.append("company")
    if contact.get("title") or contact.get("job_title"):
        score += 20
        present.append("title")
    if contact.get("industry"):
        score += 20
        present.append("industry")
    return score, ", ".join(present) if present else "no company data"


def score_social_profiles(profiles) -> tuple:
    if isinstance(profiles, dict):
        count = sum(1 for v in profiles.values() if v)
    elif isinstance(profiles, (list, tuple)):
        count = sum(1 for v in profiles if v)
    else:
        count = 0
    return min(count * 25, 100), f"{count} profile(s)"


def score_engagement_history(history) -> tuple:
    count = len(history) if isinstance(history, (list, tuple)) else 0
    return min(count * 10, 100), f"{count} interaction(s)"


# ─── BONUS HELPERS ────────────────────────────────────────────

def is_priority(contact: dict) -> bool:
    if contact.get("is_priority") is True:
        return True
    priority = contact.get("priority")
    if priority is True:
        return True
    return isinstance(priority, str) and priority.strip().lower() == "high"


def parse_timestamp(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since_activity(contact: dict, now: datetime = None) -> Optional[float]:
    """Days since the contact's last recorded activity, or None if unknown."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    for field in ACTIVITY_FIELDS:
        ts = parse_timestamp(contact.get(field))
        if ts:
            return max(0.0, (now - ts).total_seconds() / 86400)
    return None


def grade_for(score: float) -> str:
    for breakpoint, grade in GRADE_BREAKPOINTS:
        if score >= breakpoint:
            return grade
    return "F"


# ─── SMART SCORE ──────────────────────────────────────────────

def calculate_smart_score(contact: dict, now: datetime = None) -> dict:
    """Score a contact's data quality. Deterministic and explainable.

    Args:
        contact: Contact dict (email, phone, company, title, industry,
            social_profiles, engagement_history, priority, last_activity).
        now: Reference time for the recent-activity bonus (default: now, UTC).

    Returns:
        {"total_score": int 0-100, "factors": [...], "grade": "A".."F"}
    """
    raw = {
        "email_quality": score_email_quality(contact.get("email")),
        "phone_completeness": score_phone_completeness(contact.get("phone")),
        "company_completeness": score_company_completeness(contact),
        "social_profiles": score_social_profiles(contact.get("social_profiles")),
        "engagement_history": score_engagement_history(contact.get("engagement_history")),
    }

    factors = []
    total = 0.0
    for name, weight in FACTOR_WEIGHTS.items():
        score, detail = raw[name]
        contribution = score * weight
        total += contribution
        factors.append({
            "name": name,
            "weight": weight,
            "score": score,
            "contribution": round(contribution, 2),
            "detail": detail,
        })

    if is_priority(contact):
        total += PRIORITY_BONUS
        factors.append({
            "name": "priority_bonus", "weight": 0, "score": PRIORITY_BONUS,
            "contribution": PRIORITY_BONUS, "detail": "flagged as priority",
        })

    days = days_since_activity(contact, now)
    if days is not None and days <= RECENT_ACTIVITY_DAYS:
        total += RECENT_ACTIVITY_BONUS
        factors.append({
            "name": "recent_activity_bonus", "weight": 0, "score": RECENT_ACTIVITY_BONUS,
            "contribution": RECENT_ACTIVITY_BONUS, "detail": f"active {int(days)} day(s) ago",
        })

    total_score = max(0, min(100, round(total)))
    return {
        "total_score": total_score,
        "factors": factors,
        "grade": grade_for(total_score),
    }


# ─── SCORE REPORT ─────────────────────────────────────────────

def generate_insights(contact: dict, score: int) -> list:
    company = contact.get("company") or "their company"
    if score > 80:
        return [
            f"Strong match based on {contact.get('industry') or 'their industry'} expertise and role at {company}",
            "Profile indicates decision-making authority within organization",
            "Engagement pattern suggests high interest in your solutions",
        ]
    if score > 60:
        return [
            f"Moderate match for {company} based on their current role",
            "May need additional nurturing to become sales-ready",
            "Previous engagement shows some interest in related solutions",
        ]
    return [
        "Limited data available to assess potential fit",
        "Requires additional qualification steps",
        "Consider educational content before direct sales approach",
    ]


def generate_recommendations(contact: dict, score: int) -> list:
    if score > 80:
        return [
            "Schedule a personalized demo within 48 hours",
            f"Send case studies relevant to {contact.get('industry') or 'their industry'}",
            "Assign high-priority status in pipeline",
        ]
    if score > 60:
        return [
            "Share relevant industry content via email",
            "Connect on LinkedIn to strengthen relationship",
            "Schedule a discovery call within the next week",
        ]
    return [
        "Add to nurturing campaign sequence",
        "Monitor engagement with marketing materials",
        "Reassess lead score in 30 days",
    ]


_C_SUITE_RE = re.compile(r"\b(ceo|cto|cfo|coo|cmo|chief|president|founder|owner)\b")
_DIRECTOR_RE = re.compile(r"\b(director|vp|vice president|head)\b")
_ENTERPRISE_RE = re.compile(r"\b(inc|corp|corporation|international)\b")


def generate_categories(contact: dict) -> list:
    categories = []

    title = str(contact.get("title") or contact.get("job_title") or "").lower()
    if title:
        # "vice president" must not land in the C-suite bucket
        if _C_SUITE_RE.search(title) and "vice president" not in title:
            categories.append("C-Suite")
        elif _DIRECTOR_RE.search(title):
            categories.append("Director-Level")
        elif "manager" in title:
            categories.append("Manager")

    company = str(contact.get("company") or "").lower()
    if company:
        if _ENTERPRISE_RE.search(company):
            categories.append("Enterprise")
        else:
            categories.append("SMB")

    return categories or ["General Contact"]


def _slug(value: str) -> str:
    return re.sub(r"\s+", "-", str(value).strip().lower())


def generate_tags(contact: dict, score: int) -> list:
    if score > 80:
        tags = ["high-priority"]
    elif score > 60:
        tags = ["medium-priority"]
    else:
        tags = ["low-priority"]

    if contact.get("industry"):
        tags.append(_slug(contact["industry"]))
    if contact.get("interest_level"):
        tags.append(str(contact["interest_level"]))

    sources = contact.get("sources") or []
    if sources and sources[0]:
        tags.append(f"source-{_slug(sources[0])}")
    return tags


def score_confidence(smart_score: dict) -> int:
    """50 plus 9 per weighted factor that had any data."""
    populated = sum(1 for f in smart_score["factors"]
                    if f["name"] in FACTOR_WEIGHTS and f["score"] > 0)
    return 50 + populated * 9


def build_score_report(contact_id: str, contact: dict, provider: str = "rules",
                       model: str = "smart-score-v1", now: datetime = None) -> dict:
    """Full smart-score payload for one contact."""
    start = time.time()
    smart = calculate_smart_score(contact, now=now)
    score = smart["total_score"]
    return {
        "contact_id": contact_id,
        "score": score,
        "grade": smart["grade"],
        "factors": smart["factors"],
        "confidence": score_confidence(smart),
        "insights": generate_insights(contact, score),
        "recommendations": generate_recommendations(contact, score),
        "categories": generate_categories(contact),
        "tags": generate_tags(contact, score),
        "provider": provider,
        "model": model,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "processing_time_ms": int((time.time() - start) * 1000),
    }


# ─── BULK ANALYSIS ────────────────────────────────────────────

ANALYSIS_TYPES = ("contact_scoring", "categorization", "tagging", "lead_qualification")


class BulkLimitExceeded(Exception):
    """Raised when a bulk request's estimated cost or time exceeds its limit."""
    pass


def qualification_status(score: int) -> str:
    if score >= 70:
        return "Qualified"
    if score >= 40:
        return "Partially Qualified"
    return "Unqualified"


def _analyze_one(contact_id: str, contact: dict, analysis_type: str) -> dict:
    smart = calculate_smart_score(contact)
    score = smart["total_score"]
    confidence = score_confidence(smart)

    if analysis_type == "contact_scoring":
        return {"contact_id": contact_id, "score": score, "grade": smart["grade"],
                "confidence": confidence, "insights": generate_insights(contact, score)}
    if analysis_type == "categorization":
        return {"contact_id": contact_id, "categories": generate_categories(contact),
                "confidence": confidence}
    if analysis_type == "tagging":
        return {"contact_id": contact_id, "tags": generate_tags(contact, score),
                "confidence": confidence}
    return {"contact_id": contact_id, "qualification_score": score,
            "status": qualification_status(score), "confidence": confidence}


def run_bulk_analysis(items: list, analysis_type: str, urgency: str = "medium",
                      cost_limit: float = None, time_limit_ms: int = None,
                      provider: str = "rules", model: str = "smart-score-v1") -> dict:
    """Analyze a batch of {contact_id, contact} items.

    Limits are checked against estimates before any work is done. A bad item
    is recorded in "failed" and never stops the batch.

    Raises:
        ValueError: unknown analysis_type or empty batch.
        BulkLimitExceeded: estimated cost or time over the given limit.
    """
    if analysis_type not in ANALYSIS_TYPES:
        raise ValueError(f"Unknown analysis type: {analysis_type}")
    if not items:
        raise ValueError("contacts must be a non-empty list")

    estimated_cost = len(items) * BULK_COST_PER_CONTACT
    estimated_time = len(items) * BULK_MS_PER_CONTACT
    if cost_limit is not None and estimated_cost > cost_limit:
        raise BulkLimitExceeded(
            f"Estimated cost (${estimated_cost:.3f}) exceeds limit (${cost_limit})"
        )
    if time_limit_ms is not None and estimated_time > time_limit_ms:
        raise BulkLimitExceeded(
            f"Estimated time ({estimated_time}ms) exceeds limit ({time_limit_ms}ms)"
        )

    start = time.time()
    results = []
    failed = []

    for item in items:
        contact_id = (item or {}).get("contact_id") or "unknown"
        contact = (item or {}).get("contact")
        if not isinstance(contact, dict) or contact_id == "unknown":
            failed.append({"contact_id": contact_id, "error": "Invalid contact data"})
            continue
        try:
            result = _analyze_one(contact_id, contact, analysis_type)
        except Exception as e:
            log_pipeline_error(phase="bulk_analysis", error=e, contact_id=contact_id,
                               agent_name="smart_scorer")
            failed.append({"contact_id": contact_id, "error": str(e) or type(e).__name__})
            continue
        result.update({"analysis_type": analysis_type, "urgency": urgency,
                       "provider": provider, "model": model})
        results.append(result)

    elapsed_ms = int((time.time() - start) * 1000)
    logger.info("Bulk %s: %d ok, %d failed in %dms",
                analysis_type, len(results), len(failed), elapsed_ms)

    return {
        "results": results,
        "failed": failed,
        "summary": {
            "total": len(items),
            "successful": len(results),
            "failed": len(failed),
            "analysis_type": analysis_type,
            "urgency": urgency,
            "total_cost": round(len(results) * BULK_COST_PER_CONTACT, 4),
            "total_processing_time_ms": elapsed_ms,
            "model_used": model,
        },
    }
