"""SDR agent preset routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional

from smartcrm.agents.sdr_agents import UnknownPresetError, list_presets, run_sdr_agent
from smartcrm.api.schemas import ContactIn

router = APIRouter(prefix="/api/sdr", tags=["sdr"])


class SDRRunRequest(BaseModel):
    contact: ContactIn
    objection: Optional[str] = None
    follow_up_number: Optional[int] = None
    activities: Optional[list] = None
    deals: Optional[list] = None


@router.get("/presets")
def presets():
    return list_presets()


@router.post("/{preset}")
def run_preset(preset: str, req: SDRRunRequest):
    options = req.model_dump(exclude={"contact"}, exclude_none=True)
    try:
        return run_sdr_agent(preset, req.contact.as_dict(), **options)
    except UnknownPresetError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
