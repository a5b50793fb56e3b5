import uuid

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Index

from .base import Base


class JobSummaryRecord(Base):
    __tablename__ = 'job_summary'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Identity
    job_id = Column(String(512), nullable=False, unique=True)
    company_id = Column(String(64), nullable=False)
    company_name = Column(Text, nullable=False)
    hiring_agency = Column(Text)

    # Posting
    job_title = Column(Text)
    location = Column(Text)
    job_description = Column(Text)
    job_highlights = Column(JSON, nullable=False, default=list)
    source_name = Column(Text)
    source_link = Column(Text)
    content_hash = Column(String(64))  # Detects re-ingested postings whose content changed

    # Division inference
    division = Column(Text)
    confidence = Column(Integer, nullable=False, default=0)
    reasoning = Column(Text)

    posted_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_job_summary_company_id', 'company_id'),
        Index('ix_job_summary_posted_at', 'posted_at'),
        Index('ix_job_summary_updated_at', 'updated_at'),
    )
