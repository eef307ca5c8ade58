"""Request models shared by the routers."""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict


class ContactIn(BaseModel):
    """A contact as sent by the frontend. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    title: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    social_profiles: Optional[Union[dict, list]] = None
    engagement_history: Optional[list] = None
    priority: Optional[Union[bool, str]] = None
    is_priority: Optional[bool] = None
    last_activity: Optional[str] = None
    interest_level: Optional[str] = None
    sources: Optional[List[str]] = None
    notes: Optional[str] = None

    def as_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
