"""Smart score and bulk analysis routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List, Optional

from smartcrm.agents.smart_scorer import (
    BulkLimitExceeded,
    build_score_report,
    calculate_smart_score,
    run_bulk_analysis,
)
from smartcrm.api.schemas import ContactIn

router = APIRouter(prefix="/api/scoring", tags=["scoring"])

SCORER_PROVIDER = "rules"
SCORER_MODEL = "smart-score-v1"


class SmartScoreRequest(BaseModel):
    contact_id: str
    contact: ContactIn


class RawScoreRequest(BaseModel):
    contact: ContactIn


class BulkItem(BaseModel):
    contact_id: Optional[str] = None
    contact: Optional[ContactIn] = None


class BulkRequest(BaseModel):
    contacts: List[BulkItem]
    analysis_type: str
    urgency: Optional[str] = "medium"
    cost_limit: Optional[float] = None
    time_limit: Optional[int] = None  # milliseconds


@router.post("/smart-score")
def smart_score(req: SmartScoreRequest):
    if not req.contact_id.strip():
        raise HTTPException(status_code=400, detail="contact_id is required")
    return build_score_report(req.contact_id, req.contact.as_dict(),
                              provider=SCORER_PROVIDER, model=SCORER_MODEL)


@router.post("/smart-score/raw")
def raw_score(req: RawScoreRequest):
    return calculate_smart_score(req.contact.as_dict())


@router.post("/bulk")
def bulk(req: BulkRequest):
    items = [
        {"contact_id": item.contact_id,
         "contact": item.contact.as_dict() if item.contact is not None else None}
        for item in req.contacts
    ]
    try:
        return run_bulk_analysis(
            items, req.analysis_type, urgency=req.urgency,
            cost_limit=req.cost_limit, time_limit_ms=req.time_limit,
            provider=SCORER_PROVIDER, model=SCORER_MODEL,
        )
    except (BulkLimitExceeded, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
