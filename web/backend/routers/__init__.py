"""API route handlers."""

from .jobs import router as jobs_router
from .companies import router as companies_router
from .stats import router as stats_router
from .pipeline import router as pipeline_router
