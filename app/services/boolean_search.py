"""
app/services/boolean_search.py — Sourcing boolean strings from job requirements.

Given must-have / bonus / exclude terms (or a raw job description to mine
them from) build ready-to-paste queries for LinkedIn, Google X-ray,
Indeed and GitHub.
"""

import re
from dataclasses import dataclass, field

MAX_TERMS = 8

TECH_TERMS = [
    "javascript", "typescript", "python", "java", "c++", "c#", "ruby", "go", "rust",
    "react", "angular", "vue", "node.js", "django", "flask", "spring", "rails",
    "aws", "azure", "gcp", "docker", "kubernetes", "terraform", "jenkins",
    "postgresql", "mongodb", "redis", "elasticsearch", "mysql", "oracle",
    "machine learning", "deep learning", "nlp", "computer vision", "ai",
    "agile", "scrum", "devops", "ci/cd", "microservices", "rest api", "graphql",
]

# Sentences introduced by these markers list bonus skills
BONUS_SECTION = re.compile(r"(nice to have|preferred|bonus|plus)\b:?\s*([^.\n]+)", re.I)
EXPERIENCE = re.compile(r"(\d+)\+?\s*years?\s*(of\s*)?(experience|exp)", re.I)

SEARCH_TIPS = [
    'Use quotation marks for exact phrases (e.g., "machine learning")',
    "Adjust terms based on initial results",
    "Consider industry-specific synonyms",
    "Test queries with different combinations",
]


@dataclass
class BooleanQueries:
    linkedin: str
    google: str
    indeed: str
    github: str
    must: list[str] = field(default_factory=list)
    bonus: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)


def _term_pattern(term: str) -> re.Pattern:
    # Whole-word match so "go" does not hit "good" and "ai" does not hit "maintain"
    return re.compile(rf"(?<![\w+#.]){re.escape(term)}(?![\w+#])", re.I)


def _find_terms(text: str) -> list[str]:
    return [term for term in TECH_TERMS if _term_pattern(term).search(text)]


def extract_key_terms(jd_text: str) -> tuple[list[str], list[str]]:
    """
    Mine (must, bonus) terms from a job description.

    Terms appearing only inside "nice to have / preferred / bonus / plus"
    sentences are bonus; everything else is a must. A years-of-experience
    requirement is appended to the must list.
    """
    if not jd_text:
        return [], []

    bonus_text = " ".join(m.group(2) for m in BONUS_SECTION.finditer(jd_text))
    core_text = BONUS_SECTION.sub(" ", jd_text)

    must = _find_terms(core_text)
    bonus = [t for t in _find_terms(bonus_text) if t not in must]

    experience = EXPERIENCE.search(core_text)
    if experience:
        must.append(f"{experience.group(1)}+ years experience")

    return must[:MAX_TERMS], bonus[:MAX_TERMS]


def _quoted(terms: list[str]) -> list[str]:
    return [f'"{t}"' for t in terms]


def linkedin_query(must: list[str], bonus: list[str], exclude: list[str], locations: list[str]) -> str:
    query = " AND ".join(_quoted(must))
    if bonus:
        bonus_query = " OR ".join(_quoted(bonus))
        query = f"{query} AND ({bonus_query})" if query else bonus_query
    if exclude:
        query += " NOT (" + " OR ".join(_quoted(exclude)) + ")"
    if locations:
        query += " AND (" + " OR ".join(_quoted(locations)) + ")"
    return query.strip() or "Enter job requirements to generate query"


def google_query(must: list[str], bonus: list[str], exclude: list[str], locations: list[str]) -> str:
    query = "site:linkedin.com/in OR site:github.com"
    if must:
        query += " " + " ".join(_quoted(must))
    if bonus:
        query += " (" + " OR ".join(_quoted(bonus)) + ")"
    for term in exclude:
        query += f' -"{term}"'
    if locations:
        query += " (" + " OR ".join(_quoted(locations)) + ")"
    return query + " (resume OR CV OR profile)"


def indeed_query(must: list[str], bonus: list[str], exclude: list[str]) -> str:
    query = "resume " + " ".join(_quoted(must))
    if bonus:
        query += " (" + " OR ".join(bonus) + ")"
    for term in exclude:
        query += f" NOT {term}"
    return query.strip()


def github_query(must: list[str], bonus: list[str]) -> str:
    if not must and not bonus:
        return "Enter skills to search GitHub profiles"
    query = " ".join(must)
    if bonus:
        query += " " + " OR ".join(bonus)
    return query.strip() + " language:* location:*"


def generate_boolean_queries(
    jd_text: str | None = None,
    requirements: list[str] | None = None,
    nice_to_haves: list[str] | None = None,
    exclude: list[str] | None = None,
    locations: list[str] | None = None,
) -> BooleanQueries:
    """
    Build platform queries. Explicit requirements / nice_to_haves win over
    terms mined from jd_text. Raises ValueError when neither is given.
    """
    if not jd_text and not requirements:
        raise ValueError("Job description or requirements are required")

    mined_must, mined_bonus = extract_key_terms(jd_text or "")
    must = list(requirements) if requirements else mined_must
    bonus = list(nice_to_haves) if nice_to_haves else mined_bonus
    exclude = list(exclude or [])
    locations = list(locations or [])

    return BooleanQueries(
        linkedin=linkedin_query(must, bonus, exclude, locations),
        google=google_query(must, bonus, exclude, locations),
        indeed=indeed_query(must, bonus, exclude),
        github=github_query(must, bonus),
        must=must,
        bonus=bonus,
        exclude=exclude,
        locations=locations,
    )
