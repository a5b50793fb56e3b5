"""
Pydantic models for JSON schemas used in AI extractions.

All schemas follow OpenAI's structured output requirements with strict validation.
"""
from typing import List
from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# DIVISION INFERENCE
# ============================================================================

class DivisionExtraction(BaseModel):
    """Most likely business unit responsible for a posting."""
    model_config = ConfigDict(extra='forbid')

    division: str = Field(
        description="Internal division or business unit; empty string when no clear division can be identified"
    )
    reasoning: str = Field(description="Short justification for the chosen division")
    confidence: int = Field(description="Confidence score between 0 and 100")


# Generate OpenAI-compatible schema
DIVISION_SCHEMA = {
    "name": "division_inference_schema",
    "strict": True,
    "schema": DivisionExtraction.model_json_schema()
}


# ============================================================================
# ORGANIZATIONAL HIERARCHY
# ============================================================================

class HierarchyPerson(BaseModel):
    """A named person and their job title."""
    model_config = ConfigDict(extra='forbid')

    name: str = Field(description="Full name of the person")
    title: str = Field(description="Job title as written in the source")


class HierarchyExtraction(BaseModel):
    """Reporting chain for one division, highest rank first."""
    model_config = ConfigDict(extra='forbid')

    org_hierarchy: List[HierarchyPerson] = Field(
        description="People ordered from highest to lowest rank"
    )


HIERARCHY_SCHEMA = {
    "name": "org_hierarchy_schema",
    "strict": True,
    "schema": HierarchyExtraction.model_json_schema()
}
