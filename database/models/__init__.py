from .base import Base
from .job import JobSummaryRecord
from .company import CompanyProfileRecord

__all__ = [
    'Base',
    'JobSummaryRecord',
    'CompanyProfileRecord',
]
