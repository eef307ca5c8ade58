"""
SmartCRM - SDR Agent Presets
Named sales-development automations that produce one draft or research brief for one contact.

Presets:
  cold_email         first-touch email
  follow_up          nth follow-up after no reply (tone escalates with the number)
  reactivation       re-engage a contact who went quiet
  win_back           re-open a lost or churned customer
  objection_handler  reply to an objection the prospect raised
  discovery          research notes, a 1-10 fit score and next actions

Each preset builds an LLM prompt asking for JSON and has a templated result
that is used when the LLM Gateway is not configured or fails.

Usage:
    from smartcrm.agents.sdr_agents import run_sdr_agent

    draft = run_sdr_agent("cold_email", contact)
    reply = run_sdr_agent("objection_handler", contact, objection="Too expensive")
"""

import json
from datetime import datetime, timezone

from smartcrm.logging_config import get_agent_logger
from smartcrm.agents.error_handler import log_pipeline_error
from smartcrm.agents.llm_gateway import LLMError, extract_json, get_gateway
from smartcrm.agents.objection_engine import (
    classify_objection,
    objection_label,
    templated_response,
)
from smartcrm.agents.smart_scorer import days_since_activity, parse_timestamp

logger = get_agent_logger("sdr")


class UnknownPresetError(Exception):
    """Raised when an SDR preset name is not registered."""
    pass


REPLY_ACTIVITY_TYPES = {"email_reply", "email_received"}
CHURN_ACTIVITY_TYPES = {"cancellation", "churn"}


# ─── CONTEXT ──────────────────────────────────────────────────

def _days_since_last(activities: list, contact: dict, now: datetime):
    """Days since the newest activity, else the contact's own last-activity field."""
    stamps = [parse_timestamp(a.get("created_at")) for a in activities]
    stamps = [s for s in stamps if s]
    if stamps:
        return max(0, int((now - max(stamps)).total_seconds() // 86400))
    days = days_since_activity(contact, now)
    return int(days) if days is not None else None


def build_context(contact: dict, options: dict, now: datetime = None) -> dict:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    activities = [a for a in (options.get("activities") or []) if isinstance(a, dict)]
    deals = [d for d in (options.get("deals") or []) if isinstance(d, dict)]
    name = (contact.get("name") or "").strip()

    return {
        "first_name": contact.get("first_name") or (name.split(" ")[0] if name else "there"),
        "company": contact.get("company") or "your company",
        "title": contact.get("title") or contact.get("job_title") or "",
        "industry": contact.get("industry") or "",
        "activities": activities,
        "deals": deals,
        "days_since_last_activity": _days_since_last(activities, contact, now),
        "has_replied": any(a.get("type") in REPLY_ACTIVITY_TYPES for a in activities),
        "follow_up_number": max(1, int(options.get("follow_up_number") or 1)),
        "objection": (options.get("objection") or "").strip(),
        "lost_deal": next((d for d in deals
                           if d.get("status") == "lost" or d.get("stage") == "lost"), None),
        "churn_indicators": [a for a in activities
                             if a.get("type") in CHURN_ACTIVITY_TYPES or a.get("outcome") == "lost"],
    }


def _contact_summary(contact: dict, ctx: dict) -> str:
    return json.dumps({
        "name": contact.get("name") or ctx["first_name"],
        "company": ctx["company"],
        "title": ctx["title"],
        "email": contact.get("email"),
        "industry": ctx["industry"],
        "notes": contact.get("notes"),
    })


# ─── PROMPTS ──────────────────────────────────────────────────

def _cold_email_prompt(contact: dict, ctx: dict) -> str:
    title = f" ({ctx['title']})" if ctx["title"] else ""
    return f"""Generate a personalized cold email to {ctx['first_name']}{title} at {ctx['company']}.

Contact details: {_contact_summary(contact, ctx)}

The cold email should:
- Have an attention-grabbing subject line
- Open with something relevant to them or their company
- Clearly articulate value proposition
- Include a soft call-to-action (not pushy)
- Be concise (under 150 words)
- Sound human, not templated

Return JSON with "subject" and "body" fields."""


_FOLLOW_UP_GUIDANCE = {
    1: ["Reference any previous conversation",
        "Provide additional value or resources",
        "Ask a specific question to encourage response",
        "Keep it concise and friendly"],
    2: ["Acknowledge that this is a second attempt",
        "Offer something new or different value",
        "Create urgency or scarcity if appropriate",
        "Be more direct about next steps"],
    3: ["Be more assertive about the value proposition",
        "Include social proof or case studies if relevant",
        "Give them an easy out if they're not interested",
        "Consider this might be the last attempt"],
}


def _follow_up_prompt(contact: dict, ctx: dict) -> str:
    number = ctx["follow_up_number"]
    guidance = _FOLLOW_UP_GUIDANCE.get(number, ["Create a compelling follow-up that re-engages the contact"])
    last = ctx["activities"][0] if ctx["activities"] else None
    bullets = "\n".join(f"- {g}" for g in guidance)
    return f"""Generate follow-up email #{number} to {ctx['first_name']} at {ctx['company']}.

Contact details: {_contact_summary(contact, ctx)}
Last activity: {json.dumps(last, default=str) if last else 'No recent activity'}
Days since last contact: {ctx['days_since_last_activity'] if ctx['days_since_last_activity'] is not None else 30}
Has replied before: {ctx['has_replied']}

The follow-up should:
{bullets}

Return JSON with "subject" and "body" fields."""


def _reactivation_prompt(contact: dict, ctx: dict) -> str:
    last = ctx["activities"][0] if ctx["activities"] else None
    return f"""Generate a reactivation email to re-engage {ctx['first_name']} at {ctx['company']}.

Contact details: {_contact_summary(contact, ctx)}
Last activity: {json.dumps(last, default=str) if last else 'No recent activity'}
Days since last contact: {_reactivation_days(ctx)}

The reactivation email should:
- Reference the time gap since last contact
- Provide new value or updates that might interest them
- Ask about their current situation or needs
- Suggest reconnecting for a conversation
- Be warm and non-pushy

Return JSON with "subject" and "body" fields."""


def _win_back_prompt(contact: dict, ctx: dict) -> str:
    return f"""You are creating a win-back campaign email for a churned or lost customer.

Contact: {ctx['first_name']} at {ctx['company']}
Title: {ctx['title'] or 'Not specified'}
Industry: {ctx['industry'] or 'Not specified'}

Deal history: {json.dumps(ctx['deals'][:3], default=str)}
Recent activities: {json.dumps(ctx['activities'][:5], default=str)}
Lost deal info: {json.dumps(ctx['lost_deal'], default=str) if ctx['lost_deal'] else 'No specific lost deal found'}
Churn indicators: {json.dumps(ctx['churn_indicators'], default=str)}

Analyze the context and:
1. Identify the likely churn reason
2. Craft a personalized win-back offer
3. Write a compelling win-back email

Return JSON with:
- "subject": Email subject line
- "body": Full email body
- "churn_reason": Your analysis of why they churned (1-2 sentences)
- "win_back_offer": The specific offer you're making to win them back"""


def _objection_prompt(contact: dict, ctx: dict) -> str:
    return f"""You are an expert sales development representative handling objections.

Contact: {ctx['first_name']} at {ctx['company']}
Title: {ctx['title'] or 'Not specified'}
Industry: {ctx['industry'] or 'Not specified'}

The prospect raised this objection: "{ctx['objection']}"

Common objection categories:
- Price/Budget: "too expensive", "no budget", "need to cut costs"
- Timing: "not now", "maybe next quarter", "bad timing"
- Competition: "we use X competitor", "happy with current solution"
- Authority: "need to check with my boss", "not my decision"
- Need: "we don't need this", "not a priority"
- Trust: "never heard of you", "need references"

Craft a professional, empathetic response that:
1. Acknowledges their concern without being dismissive
2. Provides relevant context or reframe
3. Offers a path forward
4. Maintains the relationship even if they're not ready

Return JSON with:
- "response": The full email response text
- "confidence": A number from 0.0 to 1.0 indicating how confident you are in this response
- "objection_type": The category this objection falls into"""


def _discovery_prompt(contact: dict, ctx: dict) -> str:
    return f"""You are a Sales Development Representative performing discovery research on a prospect.

Contact: {contact.get('name') or ctx['first_name']}
Title: {ctx['title'] or 'Not specified'}
Company: {ctx['company']}
Email: {contact.get('email') or 'Not specified'}
Industry: {ctx['industry'] or 'Not specified'}
LinkedIn: {contact.get('linkedin') or 'Not available'}
Website: {contact.get('website') or 'Not available'}
Notes: {contact.get('notes') or 'None'}

Recent activities: {json.dumps(ctx['activities'][:5], default=str)}

Perform discovery research and return JSON with:
1. "research": {{
   "linkedin": "Summary of what we can infer about their LinkedIn presence and role",
   "company": "Key insights about their company, size, funding, recent news",
   "triggers": ["3-5 potential trigger events or pain points"]
}}
2. "qualification": {{
   "score": number from 1-10 based on fit,
   "reasons": ["3-4 reasons for the score"]
}}
3. "next_actions": ["3-5 recommended next actions for the SDR"]

Be specific and actionable in your analysis."""


# ─── TEMPLATES ────────────────────────────────────────────────

def _reactivation_days(ctx: dict) -> int:
    days = ctx["days_since_last_activity"]
    return 90 if days is None else days


def _cold_email_template(contact: dict, ctx: dict) -> dict:
    return {
        "subject": f"Quick question for {ctx['first_name']} at {ctx['company']}",
        "body": (
            f"Hi {ctx['first_name']},\n\n"
            f"Teams like {ctx['company']} often tell us their pipeline data is scattered across tools. "
            f"We help bring contacts, activity and follow-ups into one place so nothing slips.\n\n"
            f"Worth a quick 15-minute chat to see if it fits? If the timing is off, no worries.\n\n"
            f"Best regards"
        ),
    }


def _follow_up_template(contact: dict, ctx: dict) -> dict:
    number = ctx["follow_up_number"]
    if number >= 3:
        body = (f"Hi {ctx['first_name']},\n\n"
                f"I haven't heard back, so I'll assume now isn't the right time for {ctx['company']}. "
                f"If that changes, just reply to this note and I'll pick it up.\n\n"
                f"Best regards")
    elif number == 2:
        body = (f"Hi {ctx['first_name']},\n\n"
                f"Trying you once more in case my last note got buried. "
                f"Would a short call next week make sense to see if this is worth exploring?\n\n"
                f"Best regards")
    else:
        body = (f"Hi {ctx['first_name']},\n\n"
                f"Following up on my earlier note. I put together a couple of ideas that might be useful for {ctx['company']}. "
                f"Would it help if I sent them over?\n\n"
                f"Best regards")
    return {"subject": f"Following up, {ctx['first_name']}", "body": body}


def _reactivation_template(contact: dict, ctx: dict) -> dict:
    days = _reactivation_days(ctx)
    return {
        "subject": f"It's been a while, {ctx['first_name']}",
        "body": (
            f"Hi {ctx['first_name']},\n\n"
            f"It's been about {days} days since we last connected, and a few things have changed on our side "
            f"that might be relevant to {ctx['company']}.\n\n"
            f"How are things going on your end? Happy to reconnect for a quick conversation if it's useful.\n\n"
            f"Best regards"
        ),
    }


def _win_back_template(contact: dict, ctx: dict) -> dict:
    return {
        "subject": f"{ctx['first_name']}, we'd love another chance",
        "body": (
            f"Hi {ctx['first_name']},\n\n"
            f"We've made real improvements since {ctx['company']} last worked with us, many based on feedback "
            f"from customers like you. I'd be glad to walk you through what's new and set up an extended trial "
            f"at no cost.\n\n"
            f"Open to a short call?\n\n"
            f"Best regards"
        ),
        "churn_reason": "Unknown - no churn analysis available",
        "win_back_offer": "Extended trial at no cost",
    }


def _objection_template(contact: dict, ctx: dict) -> dict:
    category = classify_objection(ctx["objection"])
    return {
        "response": templated_response(category, contact),
        "confidence": 0.5,
        "objection_type": objection_label(category),
    }


def _discovery_template(contact: dict, ctx: dict) -> dict:
    name = contact.get("name") or ctx["first_name"]
    role = f"{name} ({ctx['title']})" if ctx["title"] else name
    industry = f" ({ctx['industry']})" if ctx["industry"] else ""

    triggers = []
    if ctx["lost_deal"]:
        triggers.append("Previously lost deal worth revisiting")
    days = ctx["days_since_last_activity"]
    if days is not None and days > 90:
        triggers.append(f"No contact in {days} days")
    if ctx["has_replied"]:
        triggers.append("Has replied to earlier outreach")

    return {
        "research": {
            "linkedin": f"{role} at {ctx['company']}",
            "company": f"{ctx['company']}{industry} - further research needed",
            "triggers": triggers or ["Initial outreach recommended"],
        },
        "qualification": {"score": 5, "reasons": ["Unable to fully analyze - manual review needed"]},
        "next_actions": ["Perform manual LinkedIn research", "Visit company website",
                         "Schedule discovery call"],
    }


# ─── PARSERS ──────────────────────────────────────────────────

def _parse_mail(content: str, template: dict) -> dict:
    try:
        parsed = extract_json(content)
    except ValueError:
        return {**template, "body": content.strip() or template["body"]}
    draft = dict(template)
    for key in template:
        if parsed.get(key):
            draft[key] = parsed[key]
    return draft


def _parse_objection(content: str, template: dict) -> dict:
    try:
        parsed = extract_json(content)
    except ValueError:
        return {**template, "response": content.strip() or template["response"], "confidence": 0.6}
    confidence = parsed.get("confidence")
    if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
        confidence = 0.8
    return {
        "response": parsed.get("response") or template["response"],
        "confidence": max(0.0, min(1.0, float(confidence))),
        "objection_type": parsed.get("objection_type") or template["objection_type"],
    }


def _parse_discovery(content: str, template: dict) -> dict:
    try:
        parsed = extract_json(content)
    except ValueError:
        return template

    research = parsed.get("research")
    if not isinstance(research, dict):
        research = {"linkedin": "Unable to generate LinkedIn summary",
                    "company": "Unable to generate company insights",
                    "triggers": []}

    qualification = parsed.get("qualification")
    if not isinstance(qualification, dict):
        qualification = {"score": 5, "reasons": ["Default score"]}
    score = qualification.get("score")
    if not isinstance(score, (int, float)) or isinstance(score, bool):
        score = 5
    qualification = {**qualification, "score": max(1, min(10, score))}

    next_actions = parsed.get("next_actions") or parsed.get("nextActions")
    if not isinstance(next_actions, list) or not next_actions:
        next_actions = ["Review contact manually"]

    return {"research": research, "qualification": qualification, "next_actions": next_actions}


# ─── REGISTRY ─────────────────────────────────────────────────

SDR_PRESETS = {
    "cold_email": {
        "description": "Personalized first-touch cold email",
        "prompt": _cold_email_prompt,
        "template": _cold_email_template,
        "parse": _parse_mail,
    },
    "follow_up": {
        "description": "Follow-up after no reply; tone escalates with follow_up_number",
        "prompt": _follow_up_prompt,
        "template": _follow_up_template,
        "parse": _parse_mail,
    },
    "reactivation": {
        "description": "Re-engage a contact who has gone quiet",
        "prompt": _reactivation_prompt,
        "template": _reactivation_template,
        "parse": _parse_mail,
    },
    "win_back": {
        "description": "Win back a lost or churned customer",
        "prompt": _win_back_prompt,
        "template": _win_back_template,
        "parse": _parse_mail,
    },
    "objection_handler": {
        "description": "Reply to a prospect objection",
        "prompt": _objection_prompt,
        "template": _objection_template,
        "parse": _parse_objection,
        "requires": ("objection",),
    },
    "discovery": {
        "description": "Discovery research, fit qualification and next actions",
        "prompt": _discovery_prompt,
        "template": _discovery_template,
        "parse": _parse_discovery,
        "max_tokens": 1500,
    },
}


def list_presets() -> list:
    return [{"name": name, "description": agent["description"],
             "requires": list(agent.get("requires", ()))}
            for name, agent in SDR_PRESETS.items()]


def run_sdr_agent(preset: str, contact: dict, now: datetime = None, **options) -> dict:
    """Draft one message for a contact with the named preset.

    Args:
        preset: Key of SDR_PRESETS.
        contact: Contact dict.
        now: Reference time for activity gaps (default: now, UTC).
        **options: activities, deals, follow_up_number, objection.

    Returns:
        The preset's draft fields plus preset, contact_id, provider, model, debug.

    Raises:
        UnknownPresetError: preset is not registered.
        ValueError: a required option is missing.
    """
    agent = SDR_PRESETS.get(preset)
    if agent is None:
        raise UnknownPresetError(f"Unknown SDR preset: {preset}")

    ctx = build_context(contact, options, now)
    for required in agent.get("requires", ()):
        if not ctx.get(required):
            raise ValueError(f"'{required}' is required for the {preset} preset")

    template = agent["template"](contact, ctx)
    draft = template
    provider, model = "template", "template-v1"

    gateway = get_gateway()
    if gateway.is_configured:
        try:
            result = gateway.generate(
                prompt=agent["prompt"](contact, ctx),
                stage_name=preset,
                temperature=0.7,
                max_tokens=agent.get("max_tokens", 1000),
                json_mode=True,
            )
            draft = agent["parse"](result["response"], template)
            provider, model = result["provider"], result["model"]
        except LLMError as e:
            log_pipeline_error(phase="sdr", error=e, contact_id=contact.get("id"),
                               agent_name=preset)

    logger.info("SDR %s drafted via %s", preset, provider,
                extra={"agent_name": preset, "contact_id": contact.get("id") or ""})

    debug = {"days_since_last_activity": ctx["days_since_last_activity"],
             "activities_count": len(ctx["activities"]),
             "has_replied": ctx["has_replied"]}
    if preset == "reactivation":
        debug["days_since_last_activity"] = _reactivation_days(ctx)
    if preset == "follow_up":
        draft = {**draft, "follow_up_number": ctx["follow_up_number"]}

    return {
        **draft,
        "preset": preset,
        "contact_id": contact.get("id"),
        "provider": provider,
        "model": model,
        "debug": debug,
    }
