#!/usr/bin/env python3
"""
Company endpoints - paginated company profiles.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from core.app_context import AppContext
from ..dependencies import get_context, resolve_from_date, check_paging
from ..models.responses import CompanyListResponse

router = APIRouter(prefix="/api/companies", tags=["companies"])


@router.get("", response_model=CompanyListResponse)
def get_companies(
    from_date: Optional[datetime] = None,
    page: int = 0,
    page_size: Optional[int] = None,
    ctx: AppContext = Depends(get_context)
):
    """Get company profiles updated on or after ``from_date``, newest first."""
    page_size = ctx.config.display.default_page_size if page_size is None else page_size
    check_paging(page, page_size)

    since = resolve_from_date(ctx, from_date)
    display = ctx.display_repository

    return CompanyListResponse(
        success=True,
        page=page,
        page_size=page_size,
        total=display.count_companies(since),
        from_date=since,
        companies=display.get_paginated_companies(since, page, page_size)
    )
