#!/usr/bin/env python3
"""
Job endpoints - paginated job summaries.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from core.app_context import AppContext
from ..dependencies import get_context, resolve_from_date, check_paging
from ..models.responses import JobListResponse

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.get("", response_model=JobListResponse)
def get_jobs(
    from_date: Optional[datetime] = None,
    page: int = 0,
    page_size: Optional[int] = None,
    ctx: AppContext = Depends(get_context)
):
    """
    Get job summaries posted on or after ``from_date``.

    ``from_date`` defaults to the start of the display window
    (``display.lookback_days`` ago, midnight UTC). Pages are zero-based.
    """
    page_size = ctx.config.display.default_page_size if page_size is None else page_size
    check_paging(page, page_size)

    since = resolve_from_date(ctx, from_date)
    display = ctx.display_repository

    return JobListResponse(
        success=True,
        page=page,
        page_size=page_size,
        total=display.count_jobs(since),
        from_date=since,
        jobs=display.get_paginated_jobs(since, page, page_size)
    )
