from sqlalchemy import Column, String, Text, DateTime, JSON, Index

from .base import Base


class CompanyProfileRecord(Base):
    __tablename__ = 'company_profile'

    # sha256 of the normalized company name
    company_id = Column(String(64), primary_key=True)
    company_name = Column(Text, nullable=False)
    domain_name = Column(Text)

    division = Column(Text)
    divisions = Column(JSON, nullable=False, default=list)
    hierarchy_results = Column(JSON, nullable=False, default=dict)
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_company_profile_updated_at', 'updated_at'),
    )
