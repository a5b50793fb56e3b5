"""
Text rules for incoming postings.

Every rule here is a pure function over immutable inputs:

- Title normalization is an ordered table of (pattern, replacement) pairs,
  applied top to bottom and repeated until the text stops changing.
- The hierarchy name filter drops entries whose "name" is not a person.
- The validation policy decides whether a posting is in scope.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from core.config_loader import IngestionConfig
from etl.schemas import HierarchyItem, HierarchyResults, JobPosting

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Data Engineer"
DEFAULT_DEPARTMENT_SUFFIXES = ("data",)

# Enough for any realistic title; the table converges in two passes.
_MAX_PASSES = 10

TitleRule = Tuple[Pattern[str], str]


def build_title_rules(department_suffixes: Iterable[str] = DEFAULT_DEPARTMENT_SUFFIXES) -> List[TitleRule]:
    """Ordered title cleanup rules. Order matters: dash suffixes before '&'."""
    suffixes = [re.escape(s.strip()) for s in department_suffixes if s and s.strip()]
    rules: List[TitleRule] = [
        # Unify dash variants, including the mis-decoded "Â–"
        (re.compile(r"\s*(?:Â–|Â—|–|—)\s*"), " - "),
        (re.compile(r"Â"), ""),
        # "Senior Data Engineer - Capital One Software(Remote)"
        (re.compile(r"\s+-\s+[^-]*\(.*$"), ""),
        # "(Remote)", "(Req #001205)", and unclosed "(Contract"
        (re.compile(r"\s*\([^)]*\)?"), " "),
        # "Manager, Data Engineering"
        (re.compile(r"\s*,.*$"), ""),
        # "Lead Data Engineer - Cloud & GenAI Automation"
        (re.compile(r"\s+-\s+[^-]*&.*$"), ""),
    ]
    if suffixes:
        # "Lead Engineer - Data" but not "Manager - Data Analytics"
        rules.append((
            re.compile(r"(?:\s+-\s+(?:" + "|".join(suffixes) + r"))+\s*$", re.IGNORECASE),
            "",
        ))
    rules.extend([
        # "Manager/Director", but keep "Data Engineer I/II/III"
        (re.compile(r"\s*/(?!\s*[IVX]+\b).*$"), ""),
        # "Manager & Supervisor"
        (re.compile(r"\s*&.*$"), ""),
        # "Lead Engineer!"
        (re.compile(r"[\s!?.;:]+$"), ""),
        # Dangling separators left behind by the rules above
        (re.compile(r"(?:\s*[-/,])+\s*$"), ""),
        (re.compile(r"^\s*[-/,&]+\s*"), ""),
        (re.compile(r"\s{2,}"), " "),
    ])
    return rules


DEFAULT_TITLE_RULES = build_title_rules()


def _apply_rules(title: str, rules: Sequence[TitleRule]) -> str:
    current = title.strip()
    for _ in range(_MAX_PASSES):
        updated = current
        for pattern, replacement in rules:
            updated = pattern.sub(replacement, updated)
        updated = updated.strip()
        if updated == current:
            break
        current = updated
    return current


def normalize_title(
    title: Optional[str],
    rules: Sequence[TitleRule] = DEFAULT_TITLE_RULES,
    default_title: str = DEFAULT_TITLE,
) -> str:
    """
    Clean a posting title down to the role itself.

    Deterministic and idempotent. Empty or whitespace-only results fall back
    to ``default_title``.
    """
    if title is None:
        title = ""
    cleaned = _apply_rules(title, rules)
    if cleaned:
        return cleaned
    return _apply_rules(default_title, rules) or default_title


# ============================================================================
# HIERARCHY NAME FILTER
# ============================================================================

NON_PERSON_NAMES = frozenset({
    # pronouns
    "he", "she", "they", "him", "her", "them",
    # conjunctions
    "and", "or",
    # placeholders
    "unknown", "not provided", "n/a", "na", "none", "tbd", "vacant",
    "firstname lastname", "first name last name", "open role", "lifelong learner",
    # template names echoed back from the prompt example
    "jane doe", "john smith", "jane smith", "mike johnson", "alice johnson",
    # role words used as a name
    "lead", "manager", "director", "data architect",
})


def filter_hierarchy_names(results: Optional[HierarchyResults]) -> HierarchyResults:
    """
    Drop hierarchy entries whose name is not a person.

    Returns a new HierarchyResults; the input is never modified. ``None``
    yields an empty result. Survivors keep their order and get trimmed
    name and title.
    """
    if results is None:
        return HierarchyResults()

    kept: List[HierarchyItem] = []
    for item in results.org_hierarchy:
        name = (item.name or "").strip()
        if not name or name.lower() in NON_PERSON_NAMES:
            logger.debug(f"Dropping non-person hierarchy entry: {item.name!r}")
            continue
        kept.append(HierarchyItem(name=name, title=(item.title or "").strip()))
    return HierarchyResults(org_hierarchy=kept)


# ============================================================================
# VALIDATION POLICY
# ============================================================================

_PARENTHETICAL = re.compile(r"\([^)]*\)?")


@dataclass(frozen=True)
class ValidationPolicy:
    """Which postings are in scope. Built from ``ingestion`` config."""
    excluded_location_terms: Tuple[str, ...] = ("remote",)
    excluded_title_terms: Tuple[str, ...] = ("center",)
    agency_markers: Tuple[str, ...] = ()
    region_codes: Tuple[str, ...] = ("NC", "SC")
    region_names: Tuple[str, ...] = ("NORTH CAROLINA", "SOUTH CAROLINA")
    default_title: str = DEFAULT_TITLE
    title_rules: Tuple[TitleRule, ...] = field(default=tuple(DEFAULT_TITLE_RULES), repr=False)

    @classmethod
    def from_config(cls, config: IngestionConfig) -> "ValidationPolicy":
        return cls(
            excluded_location_terms=tuple(t.lower() for t in config.excluded_location_terms),
            excluded_title_terms=tuple(t.lower() for t in config.excluded_title_terms),
            agency_markers=tuple(m.lower() for m in config.agency_markers),
            region_codes=tuple(r.code.strip().upper() for r in config.target_regions),
            region_names=tuple(r.name.strip().upper() for r in config.target_regions),
            default_title=config.default_title,
            title_rules=tuple(build_title_rules(config.department_suffixes)),
        )

    def normalize_title(self, title: Optional[str]) -> str:
        return normalize_title(title, self.title_rules, self.default_title)

    def resolves_to_region(self, location: str) -> bool:
        """True when any comma-separated part of the location names a target region."""
        segments = [_PARENTHETICAL.sub("", s).strip().upper() for s in location.split(",")]
        for segment in filter(None, segments):
            if segment in self.region_names:
                return True
            for code in self.region_codes:
                if segment == code or segment.startswith(code + " "):
                    return True
        return False


def validate_posting(posting: JobPosting, normalized_title: str, policy: ValidationPolicy) -> Optional[str]:
    """
    Check a posting against the policy.

    Returns None when the posting is accepted, otherwise a short reason.
    """
    if not posting.company_name.strip() or not posting.description.strip():
        return "missing company name or description"

    location = posting.location.lower()
    for term in policy.excluded_location_terms:
        if term in location:
            return f"location contains '{term}'"

    title = normalized_title.lower()
    for term in policy.excluded_title_terms:
        if term in title:
            return f"title contains '{term}'"

    company = posting.company_name.lower()
    for marker in policy.agency_markers:
        if marker in company:
            return f"company name matches agency marker '{marker}'"

    if not policy.resolves_to_region(posting.location):
        return f"location '{posting.location}' is outside the target regions"

    return None
