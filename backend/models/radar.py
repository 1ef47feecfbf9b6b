"""
Cadence CRM - Modeles Revenue Radar
Bodies of the radar endpoints that take JSON.
"""

from pydantic import BaseModel, validator
from typing import Optional, Dict, Any


class CreateOpportunityRequest(BaseModel):
    lead: Dict[str, Any]
    industry: str = "residential_service"
    trade: Optional[str] = None

    @validator("lead")
    def validate_lead(cls, v):
        if not v:
            raise ValueError("No lead data provided")
        return v

    @validator("industry")
    def validate_industry(cls, v):
        return (v or "residential_service").strip()
