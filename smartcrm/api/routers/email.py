"""Email composition routes."""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional

from smartcrm.agents.email_composer import EMAIL_TYPES, TONES, compose_email
from smartcrm.api.schemas import ContactIn

router = APIRouter(prefix="/api/email", tags=["email"])


class ComposeRequest(BaseModel):
    contact: ContactIn
    type: Optional[str] = "introduction"
    tone: Optional[str] = "professional"
    context: Optional[str] = None


@router.post("/compose")
def compose(req: ComposeRequest):
    result = compose_email(req.contact.as_dict(), email_type=req.type or "introduction",
                           tone=req.tone or "professional", context=req.context)
    return {"success": True, "data": result, "provider": result["provider"],
            "timestamp": result["generated"]}


@router.get("/options")
def options():
    return {"types": list(EMAIL_TYPES), "tones": list(TONES)}
