# Agents - SmartCRM request-scoped engines
# Pure functions over contact dicts; the API routers are thin wrappers around them.
#
# Key modules:
#   similarity.py          - Email / name / phone / company similarity (0.0-1.0)
#   duplicate_detector.py  - Greedy duplicate grouping, analysis, recommendations
#   smart_scorer.py        - Weighted data-completeness score, score report, bulk analysis
#   llm_gateway.py         - Chat-completion client with retries and the gateway singleton
#   email_composer.py      - One-off sales email drafts (LLM with templated fallback)
#   sdr_agents.py          - SDR presets: cold email, follow-up, reactivation, win-back, objections
#   objection_engine.py    - Objection classification and templated replies
#   error_handler.py       - Non-fatal error capture for all of the above
