"""
Objection Engine - Classifies prospect objections and drafts a reply.

Maps the objection text to one of the common objection categories and
provides a templated acknowledge / reframe / next-step response that the
objection-handler SDR uses when no LLM is available.

Usage:
    from smartcrm.agents.objection_engine import classify_objection, templated_response

    category = classify_objection("We already use HubSpot")   # "competition"
    reply = templated_response(category, contact)
"""

OBJECTION_MAP = {
    "price": {
        "trigger_signals": ["expensive", "budget", "cost", "price", "pricing", "afford", "cheaper"],
        "label": "Price/Budget",
        "response": "Totally understand that budget matters, especially right now. Most teams at {company} size start small and expand once they see the return. Would it help if I put together a quick ROI breakdown based on your numbers?",
    },
    "timing": {
        "trigger_signals": ["not now", "next quarter", "next year", "bad timing", "later", "busy", "not the right time"],
        "label": "Timing",
        "response": "Makes sense, timing is everything. Rather than push, would it be useful if I checked back in a few weeks with something relevant to what {company} is working on?",
    },
    "competition": {
        "trigger_signals": ["already use", "already have", "current solution", "competitor", "happy with", "using another", "we use"],
        "label": "Competition",
        "response": "Good to hear you have something in place. A lot of teams we work with came from a similar setup and mainly wanted a second look at the gaps. Open to a short comparison so you have it on file?",
    },
    "authority": {
        "trigger_signals": ["my boss", "not my decision", "check with", "decision maker", "run it by", "team decides", "approval"],
        "label": "Authority",
        "response": "That's fair. If it helps, I can send a short summary you can forward internally, or include whoever else should weigh in on a brief call.",
    },
    "need": {
        "trigger_signals": ["don't need", "do not need", "not a priority", "no need", "not interested", "not relevant"],
        "label": "Need",
        "response": "Appreciate you being direct. Out of curiosity, how is {company} handling this today? If it's working well, no worries at all.",
    },
    "trust": {
        "trigger_signals": ["never heard", "references", "case study", "proof", "who else", "trust"],
        "label": "Trust",
        "response": "Completely reasonable. Happy to share a couple of customer stories from teams similar to {company} and connect you with a reference if that's useful.",
    },
}

GENERAL_RESPONSE = "Thanks for sharing that, it's helpful context. Would you be open to a quick conversation so I can understand where {company} is and whether this is worth exploring at all?"


def classify_objection(text: str) -> str:
    """Return the objection category key, or "general" when nothing matches.

    Categories are checked in OBJECTION_MAP order; the first signal hit wins.
    """
    lowered = (text or "").lower()
    for category, entry in OBJECTION_MAP.items():
        if any(signal in lowered for signal in entry["trigger_signals"]):
            return category
    return "general"


def objection_label(category: str) -> str:
    entry = OBJECTION_MAP.get(category)
    return entry["label"] if entry else "General"


def templated_response(category: str, contact: dict) -> str:
    """Fill the category's response template for a contact."""
    company = contact.get("company") or "your team"
    template = OBJECTION_MAP.get(category, {}).get("response", GENERAL_RESPONSE)
    return template.format(company=company)
