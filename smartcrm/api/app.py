"""
SmartCRM - FastAPI Backend
Stateless request handlers for duplicate detection, smart scoring,
email composition and SDR agent presets.

Run: uvicorn smartcrm.api.app:app --reload --port 8000
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from smartcrm import config
from smartcrm.logging_config import setup_logging
from smartcrm.agents.error_handler import get_errors, resolve_error
from smartcrm.agents.llm_gateway import get_gateway
from smartcrm.api.routers import duplicates, email, scoring, sdr

setup_logging()

app = FastAPI(
    title="SmartCRM Services",
    description="Contact deduplication, smart scoring, and AI-assisted outreach for the SmartCRM app.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─── ROUTERS ─────────────────────────────────────────────────
app.include_router(duplicates.router)
app.include_router(scoring.router)
app.include_router(email.router)
app.include_router(sdr.router)


# ─── HEALTH CHECK ───────────────────────────────────────────────

@app.get("/api/health")
def health():
    gateway = get_gateway()
    config_errors = config.validate()
    return {
        "status": "degraded" if config_errors else "healthy",
        "config_errors": config_errors,
        "gateway": {
            "configured": gateway.is_configured,
            "provider": gateway.provider_name,
            "model": gateway.model_name,
        },
        "recent_errors": len(get_errors()),
    }


# ─── ERRORS ─────────────────────────────────────────────────────

@app.get("/api/errors")
def list_errors(phase: str = None, severity: str = None, unresolved_only: bool = True):
    return get_errors(phase=phase, severity=severity, unresolved_only=unresolved_only)


@app.post("/api/errors/{error_id}/resolve")
def resolve(error_id: int):
    if not resolve_error(error_id):
        raise HTTPException(status_code=404, detail="Error not found")
    return {"id": error_id, "resolved": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
