import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CompanyFingerprinter:
    """
    Pure logic for deriving the company identifier from a company name.
    """

    @staticmethod
    def normalize(company_name: str) -> str:
        """Lowercase and collapse all whitespace runs to single spaces."""
        return " ".join(company_name.lower().split())

    @staticmethod
    def calculate(company_name: str) -> str:
        """
        Create a deterministic identifier for a company.
        Formula: SHA256(normalize(CompanyName))
        """
        if company_name is None:
            raise ValueError("company_name is required")
        raw_string = CompanyFingerprinter.normalize(company_name)
        return hashlib.sha256(raw_string.encode('utf-8')).hexdigest()


def stable_hash(*parts: Any) -> str:
    """Short sha256 digest over the given parts, joined with '|'."""
    content_str = '|'.join('' if part is None else str(part) for part in parts)
    return hashlib.sha256(content_str.encode('utf-8')).hexdigest()[:32]


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse the first JSON object found in a model reply.

    Models sometimes wrap the object in code fences or add prose around it,
    so this falls back to the outermost {...} span before giving up.
    """
    if not text:
        return None

    candidates = [text.strip()]
    match = _JSON_OBJECT_PATTERN.search(text)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    logger.warning(f"No JSON object found in model reply: {text[:200]!r}")
    return None


def lowercase_keys(data: Any) -> Any:
    """Recursively lowercase dict keys and drop spaces from them ("Org Hierarchy" -> "orghierarchy")."""
    if isinstance(data, dict):
        return {
            str(key).lower().replace(" ", "").replace("_", ""): lowercase_keys(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [lowercase_keys(item) for item in data]
    return data
