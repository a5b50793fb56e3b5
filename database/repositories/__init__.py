from database.repositories.base import BaseRepository
from database.repositories.interfaces import JobSummaryStore, CompanyProfileStore
from database.repositories.job_summary import SqlJobSummaryStore
from database.repositories.company_profile import SqlCompanyProfileStore

__all__ = [
    'BaseRepository',
    'JobSummaryStore',
    'CompanyProfileStore',
    'SqlJobSummaryStore',
    'SqlCompanyProfileStore',
]
