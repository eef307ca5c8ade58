"""Duplicate detection routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import List

from smartcrm.config import DUPLICATE_THRESHOLD
from smartcrm.agents.duplicate_detector import DETECTION_TYPES, detect_duplicates
from smartcrm.api.schemas import ContactIn

router = APIRouter(prefix="/api/duplicates", tags=["duplicates"])


class DuplicateDetectRequest(BaseModel):
    contacts: List[ContactIn]
    threshold: float = Field(DUPLICATE_THRESHOLD, ge=0.0, le=1.0)
    detection_type: str = "comprehensive"
    include_company: bool = False


@router.post("/detect")
def detect(req: DuplicateDetectRequest):
    try:
        return detect_duplicates(
            [c.as_dict() for c in req.contacts],
            threshold=req.threshold,
            detection_type=req.detection_type,
            include_company=req.include_company,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/types")
def detection_types():
    return {"detection_types": list(DETECTION_TYPES), "default_threshold": DUPLICATE_THRESHOLD}
