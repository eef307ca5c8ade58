"""
SmartCRM - AI Email Composer
Drafts a one-off sales email for a contact.

The composer:
- Asks the LLM Gateway for a JSON {subject, body} draft in the requested tone
- Fills any field the model left out from the templated draft
- Falls back to the templated draft entirely if the LLM is unavailable
"""

import logging
from datetime import datetime, timezone

from smartcrm.agents.error_handler import log_pipeline_error
from smartcrm.agents.llm_gateway import LLMError, extract_json, get_gateway

logger = logging.getLogger("smartcrm.agents.email_composer")


EMAIL_TYPES = ("introduction", "follow_up", "meeting_request", "proposal", "thank_you")
TONES = ("professional", "friendly", "casual", "formal", "creative")

COMPOSER_SYSTEM_PROMPT = """You are an expert email copywriter specializing in B2B sales communication.
Generate professional, personalized emails that drive engagement and conversions.
Use {tone} tone and focus on {email_type} style communication."""


def _first_name(contact: dict) -> str:
    if contact.get("first_name"):
        return contact["first_name"]
    name = (contact.get("name") or "").strip()
    return name.split(" ")[0] if name else "there"


def build_compose_prompt(contact: dict, email_type: str, tone: str, context: str = None) -> str:
    name = contact.get("name") or _first_name(contact)
    title = contact.get("title") or "Not specified"
    company = contact.get("company") or "Not specified"

    return f"""Generate a {tone} {email_type.replace('_', ' ')} email for this contact:

Contact: {name} ({title} at {company})
Email: {contact.get('email') or 'Not specified'}
Industry: {contact.get('industry') or 'Not specified'}

Context: {context or 'Standard business introduction'}

Requirements:
- Compelling subject line
- Personalized greeting
- Clear value proposition
- Specific call-to-action
- Professional sign-off

Return as JSON with "subject" and "body" fields."""


_SUBJECTS = {
    "introduction": "Quick introduction for {company}",
    "follow_up": "Following up with {company}",
    "meeting_request": "15 minutes next week, {first_name}?",
    "proposal": "Proposal for {company}",
    "thank_you": "Thank you, {first_name}",
}

_OPENERS = {
    "introduction": "I wanted to reach out regarding {context}.",
    "follow_up": "I wanted to follow up on {context}.",
    "meeting_request": "I'd love to find time to talk about {context}.",
    "proposal": "As promised, here is an outline of how we could help with {context}.",
    "thank_you": "Thank you for your time and for the conversation about {context}.",
}


def template_email(contact: dict, email_type: str = "introduction", context: str = None) -> dict:
    """Deterministic draft used when the LLM is unavailable."""
    first_name = _first_name(contact)
    company = contact.get("company") or "your team"
    context = context or "potential collaboration opportunities"

    subject = _SUBJECTS.get(email_type, _SUBJECTS["follow_up"]).format(
        company=company, first_name=first_name)
    opener = _OPENERS.get(email_type, _OPENERS["introduction"]).format(context=context)

    body = (
        f"Hi {first_name},\n\n"
        f"I hope this email finds you well. {opener}\n\n"
        f"Please let me know if you'd be available for a brief call to discuss this further.\n\n"
        f"Best regards"
    )
    return {"subject": subject, "body": body}


def compose_email(contact: dict, email_type: str = "introduction",
                  tone: str = "professional", context: str = None) -> dict:
    """Draft an email for a contact.

    Args:
        contact: Contact dict (name/first_name, title, company, email, industry).
        email_type: One of EMAIL_TYPES; others are passed to the LLM verbatim.
        tone: Writing tone; "creative" raises the sampling temperature.
        context: Free-text reason for writing.

    Returns:
        {"subject", "body", "tone", "type", "provider", "model", "generated"}
    """
    fallback = template_email(contact, email_type, context)
    gateway = get_gateway()
    provider = "template"
    model = "template-v1"
    draft = dict(fallback)

    if gateway.is_configured:
        try:
            result = gateway.generate(
                prompt=build_compose_prompt(contact, email_type, tone, context),
                system=COMPOSER_SYSTEM_PROMPT.format(tone=tone, email_type=email_type),
                stage_name="compose_email",
                temperature=0.7 if tone == "creative" else 0.3,
                json_mode=True,
            )
            parsed = extract_json(result["response"])
            draft = {
                "subject": parsed.get("subject") or fallback["subject"],
                "body": parsed.get("body") or fallback["body"],
            }
            provider = result["provider"]
            model = result["model"]
        except (LLMError, ValueError) as e:
            log_pipeline_error(phase="compose_email", error=e,
                               contact_id=contact.get("id"), agent_name="email_composer")
            logger.info("Using templated email for %s", contact.get("id") or "contact")

    return {
        **draft,
        "tone": tone,
        "type": email_type,
        "provider": provider,
        "model": model,
        "generated": datetime.now(timezone.utc).isoformat(),
    }
