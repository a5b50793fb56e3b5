#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import List, Optional, Dict, Any

from etl.schemas import CompanyProfile, JobSummary


class JobListResponse(BaseModel):
    """One page of job summaries, most recently posted first."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "page": 0,
                "page_size": 10,
                "total": 1,
                "from_date": "2026-09-19T00:00:00+00:00",
                "jobs": [{
                    "job_id": "eyJqb2JfdGl0bGUiOiJEYXRhIEVuZ2luZWVyIn0=",
                    "company_name": "Acme Corp",
                    "job_title": "Senior Data Engineer",
                    "location": "Charlotte, NC",
                    "division": "Data Platform",
                    "confidence": 85
                }]
            }
        }
    )

    success: bool
    page: int
    page_size: int
    total: int
    from_date: datetime
    jobs: List[JobSummary]


class CompanyListResponse(BaseModel):
    """One page of company profiles, most recently updated first."""
    success: bool
    page: int
    page_size: int
    total: int
    from_date: datetime
    companies: List[CompanyProfile]


class StatsResponse(BaseModel):
    """Response containing overall statistics."""
    success: bool
    stats: Dict[str, Any]


class PipelineTaskResponse(BaseModel):
    """Response after starting a pipeline run."""
    success: bool
    message: str


class PipelineStatusResponse(BaseModel):
    """Response containing pipeline trigger state."""
    running: bool
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None
    interval_seconds: int
