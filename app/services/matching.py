"""
app/services/matching.py — Heuristic candidate ↔ job and company ↔ ICP scoring.

calculate_match() blends five weighted signals (skills, experience,
location, salary, availability) into a 0–100 score with human-readable
reasons. Three modes:

  strict    — a missing required skill disqualifies (score 0)
  balanced  — partial credit, no relocation credit
  flexible  — half credit for a non-matching location
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from app.db.models import ICP, Candidate, Company, Job

logger = logging.getLogger(__name__)

MATCH_MODES = ("strict", "balanced", "flexible")

# experience_level → (min, max) years
EXPERIENCE_LEVELS = {
    "entry": (0, 2),
    "junior": (0, 2),
    "mid": (3, 5),
    "senior": (5, 10),
    "lead": (7, 15),
    "principal": (8, 20),
    "executive": (10, 25),
}

IMMEDIATE_NOTICE = {"immediate", "immediately", "none", "0", "0 weeks"}


@dataclass
class SkillRequirement:
    name: str
    weight: float = 0.5
    required: bool = False


@dataclass
class MatchCriteria:
    skills: list[SkillRequirement] = field(default_factory=list)
    experience_min: Optional[int] = None
    experience_max: Optional[int] = None
    experience_weight: float = 0.7
    locations: list[str] = field(default_factory=list)
    remote_ok: bool = False
    location_weight: float = 0.5
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_weight: float = 0.6
    availability: Optional[str] = None      # "immediate" earns a bonus
    mode: str = "balanced"


@dataclass
class MatchResult:
    score: float                            # 0.0 – 100.0
    reasons: list[str]
    disqualified: bool = False


def _has_skill(candidate_skills: list[str], wanted: str) -> bool:
    wanted = wanted.lower()
    return any(wanted in skill.lower() for skill in candidate_skills)


def _expected_salary(candidate: Candidate) -> Optional[float]:
    low, high = candidate.expected_salary_min, candidate.expected_salary_max
    if low is not None and high is not None:
        return (float(low) + float(high)) / 2
    value = low if low is not None else high
    return float(value) if value is not None else None


# ── Candidate ↔ Job ──────────────────────────────────────────────────────────

def criteria_from_job(job: Job, mode: str = "balanced") -> MatchCriteria:
    """Derive match criteria from a job's requirements, level, location and salary."""
    skills = [SkillRequirement(name=s, weight=0.9, required=True) for s in (job.requirements or [])]
    skills += [SkillRequirement(name=s, weight=0.5) for s in (job.nice_to_haves or [])]

    exp_min, exp_max = EXPERIENCE_LEVELS.get((job.experience_level or "").lower(), (None, None))
    remote = (job.location_type or "").lower() == "remote"

    return MatchCriteria(
        skills=skills,
        experience_min=exp_min,
        experience_max=exp_max,
        locations=[job.location] if job.location and not remote else [],
        remote_ok=remote,
        salary_min=job.salary_min,
        salary_max=job.salary_max,
        mode=mode,
    )


def calculate_match(candidate: Candidate, criteria: MatchCriteria) -> MatchResult:
    """Score one candidate against the criteria. See module docstring for modes."""
    if criteria.mode not in MATCH_MODES:
        raise ValueError(f"Unknown matching mode: {criteria.mode!r}")

    total_score = 0.0
    total_weight = 0.0
    reasons: list[str] = []
    candidate_skills = candidate.skills or []

    # Skills, weighted by the heaviest requirement
    if criteria.skills:
        matched_weight = 0.0
        for skill in criteria.skills:
            if _has_skill(candidate_skills, skill.name):
                matched_weight += skill.weight
                kind = "required" if skill.required else "preferred"
                reasons.append(f"Has {kind} skill: {skill.name}")
            elif skill.required and criteria.mode == "strict":
                reasons.append(f"Missing required skill: {skill.name}")
                return MatchResult(score=0.0, reasons=reasons, disqualified=True)
        max_weight = sum(s.weight for s in criteria.skills)
        category_weight = max(s.weight for s in criteria.skills)
        total_score += (matched_weight / max_weight) * category_weight
        total_weight += category_weight

    # Experience, with tolerance around the range
    if criteria.experience_min is not None and criteria.experience_max is not None:
        years = candidate.years_experience
        exp_score = 0.0
        if years is not None:
            low, high = criteria.experience_min, criteria.experience_max
            if low <= years <= high:
                reasons.append(f"Experience matches: {years} years")
                exp_score = 1.0
            elif abs(years - low) <= 1:
                reasons.append(f"Close to experience range: {years} years")
                exp_score = 0.8
            else:
                midpoint = (low + high) / 2
                exp_score = max(0.0, 1 - abs(years - midpoint) / max(high - low, 1))
        total_score += exp_score * criteria.experience_weight
        total_weight += criteria.experience_weight

    # Location
    if criteria.locations or criteria.remote_ok:
        location = (candidate.location or "").lower()
        matched = bool(location) and (
            any(city.lower() in location for city in criteria.locations)
            or (criteria.remote_ok and location == "remote")
        )
        if criteria.remote_ok and not criteria.locations:
            matched = True
        if matched:
            reasons.append(f"Location matches: {candidate.location or 'remote'}")
            total_score += criteria.location_weight
        elif criteria.mode == "flexible" or (criteria.mode == "balanced" and candidate.willing_to_relocate):
            reasons.append("Different location but may relocate")
            total_score += criteria.location_weight * 0.5
        total_weight += criteria.location_weight

    # Salary
    if criteria.salary_min is not None and criteria.salary_max is not None:
        expected = _expected_salary(candidate)
        if expected is not None:
            if criteria.salary_min <= expected <= criteria.salary_max:
                reasons.append(f"Salary in range: ${expected / 1000:.0f}k")
                total_score += criteria.salary_weight
            else:
                gap = min(abs(expected - criteria.salary_min), abs(expected - criteria.salary_max))
                salary_score = max(0.0, 1 - gap / criteria.salary_max) if criteria.salary_max else 0.0
                total_score += salary_score * criteria.salary_weight
                if salary_score > 0.7:
                    reasons.append(f"Salary close to range: ${expected / 1000:.0f}k")
        total_weight += criteria.salary_weight

    # Availability bonus
    if criteria.availability == "immediate" and (candidate.notice_period or "").lower() in IMMEDIATE_NOTICE:
        reasons.append("Available immediately")
        total_score += 0.1

    final = total_score / total_weight if total_weight > 0 else 0.0
    return MatchResult(score=round(min(1.0, final) * 100, 1), reasons=reasons)


def rank_matches(
    candidates: list[Candidate],
    criteria: MatchCriteria,
    min_score: float = 0.0,
) -> list[tuple[Candidate, MatchResult]]:
    """Score every candidate and return those at or above min_score, best first."""
    scored = [(c, calculate_match(c, criteria)) for c in candidates]
    kept = [(c, r) for c, r in scored if not r.disqualified and r.score >= min_score]
    kept.sort(key=lambda pair: pair[1].score, reverse=True)
    logger.info("Matched %d / %d candidates (mode=%s, min=%.0f).", len(kept), len(scored), criteria.mode, min_score)
    return kept


def score_candidate_search(
    candidate: Candidate,
    query: Optional[str] = None,
    skills: Optional[list[str]] = None,
    years_experience: Optional[int] = None,
    location: Optional[str] = None,
) -> float:
    """Similarity-style score (0–1) for the candidate search endpoint."""
    score = 0.0

    if query:
        haystack = " ".join(filter(None, [
            candidate.first_name, candidate.last_name, candidate.current_title,
            " ".join(candidate.skills or []),
        ])).lower()
        score += 0.1 * sum(1 for term in query.lower().split() if term in haystack)

    if skills:
        score += 0.15 * sum(1 for skill in skills if _has_skill(candidate.skills or [], skill))

    if years_experience is not None and candidate.years_experience is not None:
        diff = abs(candidate.years_experience - years_experience)
        if diff == 0:
            score += 0.3
        elif diff <= 2:
            score += 0.2
        elif diff <= 5:
            score += 0.1

    if location and candidate.location and location.lower() in candidate.location.lower():
        score += 0.2

    return round(min(score, 1.0), 2)


# ── Company ↔ ICP ────────────────────────────────────────────────────────────

@dataclass
class IcpMatch:
    matches: bool
    score: float            # fraction of ICP criteria satisfied, 0.0 – 1.0
    reasons: list[str]


def parse_size_range(size: Optional[str]) -> Optional[tuple[int, Optional[int]]]:
    """'51-200' → (51, 200); '1000+' → (1000, None); '25' → (25, 25)."""
    if not size:
        return None
    numbers = [int(n.replace(",", "")) for n in re.findall(r"\d[\d,]*", size)]
    if not numbers:
        return None
    if len(numbers) >= 2:
        return numbers[0], numbers[1]
    if "+" in size:
        return numbers[0], None
    return numbers[0], numbers[0]


def _company_text(company: Company) -> str:
    parts = [company.name, company.industry, company.description]
    signals = company.signals or {}
    if isinstance(signals, dict):
        parts.extend(str(v) for v in signals.values())
    return " ".join(p for p in parts if p).lower()


def match_company_to_icp(company: Company, icp: ICP) -> IcpMatch:
    """Check industry, geography, size range and tech keywords; each counts equally."""
    checks = 0
    passed = 0
    reasons: list[str] = []

    if icp.industry:
        checks += 1
        if (company.industry or "").lower() == icp.industry.lower():
            passed += 1
            reasons.append(f"Industry: {company.industry}")

    if icp.geography:
        checks += 1
        where = f"{company.location or ''} {company.headquarters or ''}".lower()
        if icp.geography.lower() in where:
            passed += 1
            reasons.append(f"Geography: {icp.geography}")

    if icp.company_size_min is not None or icp.company_size_max is not None:
        checks += 1
        size = parse_size_range(company.size)
        if size:
            low, high = size
            floor = icp.company_size_min or 0
            ceiling = icp.company_size_max
            if (high is None or high >= floor) and (ceiling is None or low <= ceiling):
                passed += 1
                reasons.append(f"Size: {company.size}")

    keywords = icp.tech_keywords or []
    if keywords:
        checks += 1
        text = _company_text(company)
        hits = [k for k in keywords if k.lower() in text]
        if hits:
            passed += 1
            reasons.append(f"Tech keywords: {', '.join(hits)}")

    if checks == 0:
        return IcpMatch(matches=True, score=1.0, reasons=["ICP has no criteria"])
    score = passed / checks
    return IcpMatch(matches=passed == checks, score=round(score, 2), reasons=reasons)
