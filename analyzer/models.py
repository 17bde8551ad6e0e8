"""
Data model for persisted contract analyses.

Two tier variants share one decode function: FreeAnalysis carries the minimal
shape, PremiumAnalysis adds the narrative fields. narrow_analysis() turns a
loosely-typed decoded mapping into the variant for the caller's tier.
"""
import logging
import math
import re
from typing import Any, Dict, List, Optional, TypedDict, Union

logger = logging.getLogger(__name__)

TIER_FREE = "free"
TIER_PREMIUM = "premium"
TIERS = (TIER_FREE, TIER_PREMIUM)

SCHEMA_VERSION = 1
LANGUAGE = "en"

LEVELS = ("low", "medium", "high")

# Sentinel used when neither decode path produced a usable score
DEFAULT_OVERALL_SCORE = 0

CORE_FIELDS = ("risks", "opportunities", "summary", "overallScore")

PREMIUM_ONLY_FIELDS = (
    "recommendations",
    "keyClauses",
    "legalCompliance",
    "negotiationPoints",
    "contractDuration",
    "terminationConditions",
    "compensationStructure",
    "performanceMetrics",
    "intellectualPropertyClauses",
    "financialTerms",
)

_STRING_LIST_FIELDS = ("recommendations", "keyClauses", "negotiationPoints", "performanceMetrics")
_STRING_FIELDS = ("legalCompliance", "contractDuration", "terminationConditions")
_COMPENSATION_KEYS = ("baseSalary", "bonuses", "equity", "otherBenefits")


class Risk(TypedDict, total=False):
    risk: str
    explanation: str
    severity: str
    suggestedAlternative: str


class Opportunity(TypedDict, total=False):
    opportunity: str
    explanation: str
    impact: str
    suggestedAlternative: str


class CompensationStructure(TypedDict, total=False):
    baseSalary: str
    bonuses: str
    equity: str
    otherBenefits: str


class FinancialTerms(TypedDict, total=False):
    description: str
    details: List[str]


class FreeAnalysis(TypedDict):
    risks: List[Risk]
    opportunities: List[Opportunity]
    summary: str
    overallScore: int


class PremiumAnalysis(FreeAnalysis, total=False):
    recommendations: List[str]
    keyClauses: List[str]
    legalCompliance: str
    negotiationPoints: List[str]
    contractDuration: str
    terminationConditions: str
    compensationStructure: CompensationStructure
    performanceMetrics: List[str]
    intellectualPropertyClauses: Union[str, List[str]]
    financialTerms: FinancialTerms


Analysis = Union[FreeAnalysis, PremiumAnalysis]


def normalize_score(value: Any) -> int:
    """
    Coerce an LLM-supplied score into an integer in [1, 100].

    Accepts ints, floats and strings such as "80" or "80/100". Infinite or
    out-of-float-range numbers clamp to the nearest bound. NaN, and anything
    that carries no number, yields DEFAULT_OVERALL_SCORE.
    """
    if isinstance(value, bool):
        return DEFAULT_OVERALL_SCORE
    if isinstance(value, (int, float)):
        raw = value
    elif isinstance(value, str):
        match = re.search(r'-?\d+(?:\.\d+)?', value)
        if not match:
            return DEFAULT_OVERALL_SCORE
        raw = match.group(0)
    else:
        return DEFAULT_OVERALL_SCORE

    try:
        number = float(raw)
    except OverflowError:
        # int too large for a float
        number = math.inf if raw > 0 else -math.inf

    if math.isnan(number):
        return DEFAULT_OVERALL_SCORE
    if math.isinf(number):
        return 100 if number > 0 else 1

    return max(1, min(100, int(round(number))))


def _normalize_level(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    level = value.strip().lower()
    return level if level in LEVELS else None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [_as_text(item) for item in value if item is not None]
    return [_as_text(value)]


def _narrow_findings(items: Any, title_key: str, level_key: str, premium: bool) -> List[Dict[str, str]]:
    """Keep only the keys a finding may carry for the tier."""
    if not isinstance(items, list):
        return []

    findings = []
    for item in items:
        if not isinstance(item, dict):
            continue
        finding = {
            title_key: _as_text(item.get(title_key, "Unknown")),
            "explanation": _as_text(item.get("explanation", "Unknown")),
        }
        level = _normalize_level(item.get(level_key))
        if level:
            finding[level_key] = level
        if premium and item.get("suggestedAlternative"):
            finding["suggestedAlternative"] = _as_text(item["suggestedAlternative"])
        findings.append(finding)
    return findings


def _narrow_premium_fields(decoded: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}

    for key in _STRING_LIST_FIELDS:
        if key in decoded:
            fields[key] = _as_string_list(decoded[key])

    for key in _STRING_FIELDS:
        if key in decoded:
            fields[key] = _as_text(decoded[key])

    compensation = decoded.get("compensationStructure")
    if isinstance(compensation, dict):
        fields["compensationStructure"] = {
            key: _as_text(compensation[key])
            for key in _COMPENSATION_KEYS
            if compensation.get(key) is not None
        }

    ip_clauses = decoded.get("intellectualPropertyClauses")
    if isinstance(ip_clauses, list):
        fields["intellectualPropertyClauses"] = _as_string_list(ip_clauses)
    elif ip_clauses is not None:
        fields["intellectualPropertyClauses"] = _as_text(ip_clauses)

    financial = decoded.get("financialTerms")
    if isinstance(financial, dict):
        fields["financialTerms"] = {
            "description": _as_text(financial.get("description")),
            "details": _as_string_list(financial.get("details")),
        }

    return fields


def narrow_analysis(decoded: Dict[str, Any], tier: str) -> Analysis:
    """
    Validate-and-narrow a decoded mapping into the variant for `tier`.

    Unknown keys are dropped. Premium-only keys and suggested alternatives
    are stripped from free-tier results even when the model produced them.

    Args:
        decoded: Mapping returned by the JSON decoder.
        tier: TIER_FREE or TIER_PREMIUM.

    Returns:
        FreeAnalysis or PremiumAnalysis dictionary.

    Raises:
        ValueError: If tier is unknown.
    """
    if tier not in TIERS:
        raise ValueError(f"Unknown tier: {tier}")

    premium = tier == TIER_PREMIUM

    analysis: Dict[str, Any] = {
        "risks": _narrow_findings(decoded.get("risks"), "risk", "severity", premium),
        "opportunities": _narrow_findings(decoded.get("opportunities"), "opportunity", "impact", premium),
        "summary": _as_text(decoded.get("summary")),
        "overallScore": normalize_score(decoded.get("overallScore")),
    }

    if premium:
        analysis.update(_narrow_premium_fields(decoded))
    else:
        dropped = [key for key in PREMIUM_ONLY_FIELDS if key in decoded]
        if dropped:
            logger.info(f"Stripped premium-only fields from free-tier analysis: {dropped}")

    return analysis
