"""
LLM Provider Interface - Abstract base for AI service providers.

This module defines the interface for LLM services (OpenAI, Ollama, etc.).
"""
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from etl.schemas import DivisionInference, HierarchyResults


class LLMProvider(ABC):
    """
    Abstract Interface for AI Service Providers (OpenAI, Ollama, etc.).
    """

    @abstractmethod
    def extract_structured_data(self, text: str, schema_spec: Dict) -> Dict[str, Any]:
        """
        Extract structured JSON data from text adhering to a schema.

        Args:
            text: Text to extract from
            schema_spec: Either a wrapped spec {'name', 'strict', 'schema'} or raw JSON schema
        """
        pass

    @abstractmethod
    def infer_division(self, company_name: str, description: str) -> Optional[DivisionInference]:
        """
        Infer the business unit responsible for a posting.

        Returns None on any provider failure; callers treat the result as
        optional enrichment.
        """
        pass

    @abstractmethod
    def extract_hierarchy(
        self,
        company_name: str,
        division: str,
        description: str,
        search_results: str
    ) -> Optional[HierarchyResults]:
        """
        Extract a named reporting chain from leadership search snippets.

        Returns None on any provider failure.
        """
        pass
