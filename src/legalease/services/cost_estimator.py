# src/legalease/services/cost_estimator.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from legalease.core.errors import InvalidRequestError


@dataclass(frozen=True)
class BaseRate:
    min: int
    max: int
    court: int


@dataclass(frozen=True)
class AdditionalFactor:
    id: str
    name: str
    description: str
    cost: int


BASE_RATES: Dict[str, BaseRate] = {
    "small-claims": BaseRate(200, 500, 50),
    "employment": BaseRate(2000, 8000, 200),
    "landlord-tenant": BaseRate(500, 2000, 100),
    "contract-dispute": BaseRate(1500, 6000, 150),
    "personal-injury": BaseRate(3000, 15000, 300),
    "divorce": BaseRate(2500, 10000, 250),
    "criminal-defense": BaseRate(5000, 25000, 500),
    "business-law": BaseRate(3000, 12000, 300),
    "immigration": BaseRate(1500, 5000, 400),
    "intellectual-property": BaseRate(4000, 20000, 600),
}

COMPLEXITY_MULTIPLIER = {"simple": 1.0, "moderate": 1.5, "complex": 2.5}
LOCATION_MULTIPLIER = {"urban": 1.3, "suburban": 1.0, "rural": 0.8}
URGENCY_MULTIPLIER = {"standard": 1.0, "urgent": 1.3, "emergency": 1.6}
EXPERIENCE_MULTIPLIER = {"junior": 0.7, "mid": 1.0, "senior": 1.4, "partner": 2.0}

TIMEFRAMES = {"simple": "1-3 months", "moderate": "3-8 months", "complex": "8-18 months"}

ADDITIONAL_FACTORS: Dict[str, AdditionalFactor] = {f.id: f for f in (
    AdditionalFactor("expert-witness", "Expert Witness", "Professional testimony", 2000),
    AdditionalFactor("document-review", "Document Review", "Extensive document analysis", 1500),
    AdditionalFactor("mediation", "Mediation Services", "Alternative dispute resolution", 800),
    AdditionalFactor("investigation", "Private Investigation", "Fact-finding services", 3000),
    AdditionalFactor("translation", "Translation Services", "Document translation", 500),
    AdditionalFactor("travel-expenses", "Travel Expenses", "Court appearances in other cities", 1000),
)}


@dataclass(frozen=True)
class CostEstimate:
    lawyer_fees: Tuple[int, int]
    court_fees: int
    additional_costs: List[Tuple[str, int]] = field(default_factory=list)
    timeframe: str = ""
    complexity: str = ""
    breakdown: List[str] = field(default_factory=list)

    @property
    def total(self) -> Tuple[int, int]:
        extra = sum(amount for _, amount in self.additional_costs)
        return (self.lawyer_fees[0] + self.court_fees + extra,
                self.lawyer_fees[1] + self.court_fees + extra)

    def to_dict(self) -> Dict[str, Any]:
        lo, hi = self.total
        return {
            "lawyer_fees": {"min": self.lawyer_fees[0], "max": self.lawyer_fees[1]},
            "court_fees": self.court_fees,
            "additional_costs": [{"name": n, "amount": a} for n, a in self.additional_costs],
            "total_estimate": {"min": lo, "max": hi},
            "timeframe": self.timeframe,
            "complexity": self.complexity,
            "breakdown": list(self.breakdown),
        }


def _pick(table: Dict[str, Any], key: Optional[str], what: str, default: Optional[str] = None) -> Tuple[str, Any]:
    if not key:
        if default is None:
            raise InvalidRequestError(f"{what} is required")
        key = default
    key = key.strip().lower()
    if key not in table:
        raise InvalidRequestError(f"Unknown {what} '{key}' (expected one of {', '.join(table)})")
    return key, table[key]


def _pct(mult: float) -> int:
    return round((mult - 1) * 100)


def _half_up(x: float) -> int:
    # Whole dollars, halves rounded up
    return int(x + 0.5)


def estimate_cost(
    case_type: Optional[str],
    location: Optional[str],
    complexity: Optional[str],
    *,
    urgency: Optional[str] = None,
    experience: Optional[str] = None,
    factors: Iterable[str] = (),
) -> CostEstimate:
    """
    Heuristic fee range from static rate tables.
    Lawyer fees scale the base range by complexity, location, urgency and
    lawyer experience; court fees and additional factors are flat.
    Raises InvalidRequestError for missing or unknown choices.
    """
    case_type, base = _pick(BASE_RATES, case_type, "case type")
    location, loc_mult = _pick(LOCATION_MULTIPLIER, location, "location")
    complexity, cx_mult = _pick(COMPLEXITY_MULTIPLIER, complexity, "complexity")
    urgency, urg_mult = _pick(URGENCY_MULTIPLIER, urgency, "urgency", default="standard")
    experience, exp_mult = _pick(EXPERIENCE_MULTIPLIER, experience, "experience", default="mid")

    chosen: List[AdditionalFactor] = []
    for fid in factors:
        _, factor = _pick(ADDITIONAL_FACTORS, fid, "additional factor")
        if factor not in chosen:
            chosen.append(factor)

    mult = cx_mult * loc_mult * urg_mult * exp_mult
    breakdown = [
        f"Base {case_type.replace('-', ' ')} case: ${base.min:,} - ${base.max:,}",
        f"{complexity.capitalize()} complexity: {_pct(cx_mult)}% adjustment",
        f"{location.capitalize()} location: {_pct(loc_mult)}% adjustment",
    ]
    if urgency != "standard":
        breakdown.append(f"{urgency.capitalize()} timeline: {_pct(urg_mult)}% adjustment")
    if experience != "mid":
        breakdown.append(f"{experience.capitalize()} lawyer: {_pct(exp_mult)}% adjustment")

    return CostEstimate(
        lawyer_fees=(_half_up(base.min * mult), _half_up(base.max * mult)),
        court_fees=base.court,
        additional_costs=[(f.name, f.cost) for f in chosen],
        timeframe=TIMEFRAMES[complexity],
        complexity=complexity.capitalize(),
        breakdown=breakdown,
    )
