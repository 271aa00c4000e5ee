"""
app/ingestion/normalizer.py — Cleans and validates raw import records.

Bulk imports (companies, candidates) and the public intake widget send loose
dicts straight from CSV rows or forms. These helpers turn them into typed
Pydantic models, or raise ImportValidationError with the message reported
back to the caller for that record.
"""

import logging
import re
from typing import Any, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from app.db.models import PartnerStatus

logger = logging.getLogger(__name__)


class ImportValidationError(ValueError):
    """A single import record is unusable; the message is user-facing."""


# ── Output schemas ───────────────────────────────────────────────────────────

class NormalizedCompany(BaseModel):
    """Clean company record ready for lookup-or-insert."""

    name: str
    domain: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    location: Optional[str] = None
    headquarters: Optional[str] = None
    description: Optional[str] = None
    website_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    hiring_urgency: Optional[str] = None
    hiring_volume: Optional[int] = None
    growth_stage: Optional[str] = None
    funding_amount: Optional[float] = None
    partner_status: Optional[PartnerStatus] = None

    def column_values(self) -> dict[str, Any]:
        """Only the fields that carry a value (used for COALESCE-style updates)."""
        return self.model_dump(exclude_none=True)


class NormalizedCandidate(BaseModel):
    """Clean candidate record ready for upsert by email."""

    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    years_experience: Optional[int] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    source: Optional[str] = None
    notes: Optional[str] = None
    expected_salary_min: Optional[float] = None
    expected_salary_max: Optional[float] = None

    def column_values(self) -> dict[str, Any]:
        values = self.model_dump(exclude_none=True)
        # Empty lists would wipe existing skills on update
        for key in ("skills", "tags"):
            if not values.get(key):
                values.pop(key, None)
        return values


# ── Helpers ──────────────────────────────────────────────────────────────────

def strip_html(raw: Optional[str]) -> str:
    """Remove all HTML tags and decode HTML entities."""
    if not raw:
        return ""
    if "<" not in raw and "&" not in raw:
        return raw.strip()
    soup = BeautifulSoup(raw, "lxml")
    text = soup.get_text(separator="\n")
    # Collapse runs of spaces but keep line structure (quoted replies rely on it)
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def extract_domain(url: Optional[str]) -> Optional[str]:
    """Extract bare domain from a URL, e.g. 'https://acme.com/about' → 'acme.com'."""
    if not url:
        return None
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    try:
        domain = urlparse(url).netloc.lower()
    except ValueError:
        return None
    domain = domain.split(":")[0]
    if domain.startswith("www."):
        domain = domain[4:]
    return domain or None


def split_list(value: Any) -> list[str]:
    """Accept a list or a comma / semicolon / pipe separated string."""
    if not value:
        return []
    if isinstance(value, str):
        parts = re.split(r"[,;|]", value)
    elif isinstance(value, (list, tuple)):
        parts = [str(v) for v in value if v is not None]
    else:
        return []
    seen: dict[str, str] = {}
    for part in parts:
        item = part.strip()
        if item and item.lower() not in seen:
            seen[item.lower()] = item
    return list(seen.values())


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(float(str(value).replace(",", "")))
    except ValueError:
        return None


def _to_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(str(value).replace(",", "").replace("$", ""))
    except ValueError:
        return None


def _first(raw: dict[str, Any], *keys: str) -> Any:
    """First non-empty value among alternative column names."""
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _partner_status(value: Any) -> Optional[PartnerStatus]:
    text = _clean(value)
    if not text:
        return None
    try:
        return PartnerStatus(text.lower())
    except ValueError:
        logger.debug("Ignoring unknown partner_status %r", value)
        return None


def split_full_name(name: Optional[str]) -> tuple[str, str]:
    """'Ada King Lovelace' → ('Ada', 'King Lovelace')."""
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


# ── Main functions ───────────────────────────────────────────────────────────

def normalize_company(raw: dict[str, Any]) -> NormalizedCompany:
    """Normalize one company import record. Raises ImportValidationError."""
    if not isinstance(raw, dict):
        raise ImportValidationError("Invalid company record")

    name = _clean(_first(raw, "name", "company_name", "company"))
    if not name:
        raise ImportValidationError("Company name is required")

    website = _clean(_first(raw, "website_url", "website", "url"))
    domain = extract_domain(_first(raw, "domain")) or extract_domain(website)

    return NormalizedCompany(
        name=name,
        domain=domain,
        industry=_clean(raw.get("industry")),
        size=_clean(_first(raw, "size", "company_size")),
        location=_clean(raw.get("location")),
        headquarters=_clean(raw.get("headquarters")),
        description=_clean(strip_html(_clean(raw.get("description")))),
        website_url=website,
        linkedin_url=_clean(raw.get("linkedin_url")),
        hiring_urgency=_clean(raw.get("hiring_urgency")),
        hiring_volume=_to_int(raw.get("hiring_volume")),
        growth_stage=_clean(raw.get("growth_stage")),
        funding_amount=_to_float(raw.get("funding_amount")),
        partner_status=_partner_status(raw.get("partner_status")),
    )


def normalize_candidate(raw: dict[str, Any]) -> NormalizedCandidate:
    """Normalize one candidate import record. Raises ImportValidationError."""
    if not isinstance(raw, dict):
        raise ImportValidationError("Invalid candidate record")

    first_name = _clean(raw.get("first_name"))
    last_name = _clean(raw.get("last_name"))
    if not (first_name or last_name) and raw.get("name"):
        first_name, last_name = split_full_name(str(raw["name"]))
        first_name, last_name = first_name or None, last_name or None

    email = _clean(raw.get("email"))
    if not first_name or not last_name or not email:
        raise ImportValidationError("First name, last name, and email are required")

    return NormalizedCandidate(
        first_name=first_name,
        last_name=last_name,
        email=email.lower(),
        phone=_clean(raw.get("phone")),
        location=_clean(raw.get("location")),
        current_title=_clean(_first(raw, "current_title", "title")),
        current_company=_clean(_first(raw, "current_company", "company")),
        years_experience=_to_int(raw.get("years_experience")),
        linkedin_url=_clean(raw.get("linkedin_url")),
        github_url=_clean(raw.get("github_url")),
        portfolio_url=_clean(raw.get("portfolio_url")),
        skills=split_list(raw.get("skills")),
        tags=split_list(raw.get("tags")),
        source=_clean(raw.get("source")) or "import",
        notes=_clean(raw.get("notes")),
        expected_salary_min=_to_float(raw.get("expected_salary_min")),
        expected_salary_max=_to_float(raw.get("expected_salary_max")),
    )
