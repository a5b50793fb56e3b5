#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.
"""

from datetime import datetime
from typing import Optional

from fastapi import Request

from core.app_context import AppContext
from core.display_repository import default_from_date
from .exceptions import InvalidPagingException


def get_context(request: Request) -> AppContext:
    """
    FastAPI dependency returning the AppContext the app was created with.

    Usage:
        @router.get("/endpoint")
        def my_endpoint(ctx: AppContext = Depends(get_context)):
            ...
    """
    return request.app.state.ctx


def resolve_from_date(ctx: AppContext, from_date: Optional[datetime]) -> datetime:
    """Explicit ``from_date`` or the start of the configured display window."""
    if from_date is not None:
        return from_date
    return default_from_date(ctx.config.display.lookback_days)


def check_paging(page: int, page_size: int) -> None:
    if page < 0:
        raise InvalidPagingException(f"page must be >= 0, got {page}")
    if page_size <= 0:
        raise InvalidPagingException(f"page_size must be > 0, got {page_size}")
