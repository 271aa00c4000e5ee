"""
app/ai_engine/processor.py — LangChain chain implementations for the AI helpers.

Two public functions:
  generate_job_description(title, skills)          → JobDescription
  rank_candidates(job_description, candidates)     → list[CandidateRanking]

Both work without an API key: a markdown template and a keyword-overlap
score stand in for the model. LLM failures propagate to the caller.
"""

import logging
import re
from dataclasses import dataclass

from app.ai_engine.prompt_templates import CANDIDATE_RANKING_PROMPT, JOB_DESCRIPTION_PROMPT
from app.ai_engine.utils import (
    build_llm,
    llm_available,
    parse_json_safely,
    response_text,
    truncate_for_context,
)

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[a-z0-9][a-z0-9+#.]*")
_STOPWORDS = {
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in", "is",
    "of", "on", "or", "our", "the", "to", "we", "with", "you", "your", "will",
}


# ── Output dataclasses ────────────────────────────────────────────────────────

@dataclass
class JobDescription:
    markdown: str
    generated_by: str               # "llm" or "template"


@dataclass
class CandidateInput:
    id: str
    resume_text: str


@dataclass
class CandidateRanking:
    id: str
    score: int                      # 0 – 100
    reason: str = ""


# ── 1. Job Description ────────────────────────────────────────────────────────

def template_job_description(title: str, skills: list[str]) -> str:
    skill_lines = "\n".join(f"- {skill}" for skill in skills)
    return (
        f"# {title} Position\n\n"
        f"## About the Role\n"
        f"We're looking for an experienced {title} to join our team.\n\n"
        f"## Required Skills\n{skill_lines}\n\n"
        f"## Responsibilities\n"
        f"- Work on exciting projects\n"
        f"- Collaborate with team members\n"
        f"- Deliver high-quality results\n\n"
        f"## Qualifications\n"
        f"- Previous experience in {title} role\n"
        f"- Strong communication skills\n"
        f"- Problem-solving abilities"
    )


def generate_job_description(title: str, skills: list[str]) -> JobDescription:
    """
    Write a markdown job description for the given title and skills.

    Args:
        title:  Job title, e.g. "Senior Backend Engineer".
        skills: Required skills, rendered as a bullet list.

    Returns:
        JobDescription; generated_by tells whether the model was used.
    """
    if not llm_available():
        logger.info("No LLM key configured; using template job description for %s.", title)
        return JobDescription(markdown=template_job_description(title, skills), generated_by="template")

    llm = build_llm(temperature=0.7)
    chain = JOB_DESCRIPTION_PROMPT | llm

    logger.info("Generating job description: %s (%d skills)", title, len(skills))

    response = chain.invoke({
        "title": title,
        "skills": "\n".join(f"- {s}" for s in skills),
    })
    raw_text = response_text(response).strip()

    if not raw_text:
        logger.error("Job description generation returned empty text for %s", title)
        return JobDescription(markdown=template_job_description(title, skills), generated_by="template")

    return JobDescription(markdown=raw_text, generated_by="llm")


# ── 2. Candidate Ranking ──────────────────────────────────────────────────────

def _keywords(text: str) -> set[str]:
    words = (w.rstrip(".") for w in _WORD.findall((text or "").lower()))
    return {w for w in words if w not in _STOPWORDS and len(w) > 1}


def keyword_rankings(job_description: str, candidates: list[CandidateInput]) -> list[CandidateRanking]:
    """Share of job-description keywords found in each resume, highest first."""
    wanted = _keywords(job_description)
    rankings = []
    for candidate in candidates:
        found = wanted & _keywords(candidate.resume_text)
        score = round(len(found) / len(wanted) * 100) if wanted else 0
        rankings.append(CandidateRanking(
            id=candidate.id,
            score=score,
            reason=f"Matched {len(found)} of {len(wanted)} job keywords",
        ))
    rankings.sort(key=lambda r: r.score, reverse=True)
    return rankings


def rank_candidates(job_description: str, candidates: list[CandidateInput]) -> list[CandidateRanking]:
    """
    Rank candidates for a job description.

    Unknown ids returned by the model are dropped; candidates the model
    leaves out get their keyword score. Every input is ranked exactly once,
    highest score first.
    """
    if not candidates:
        return []
    if not llm_available():
        logger.info("No LLM key configured; ranking %d candidates by keyword overlap.", len(candidates))
        return keyword_rankings(job_description, candidates)

    llm = build_llm(temperature=0.3)
    chain = CANDIDATE_RANKING_PROMPT | llm

    logger.info("Ranking %d candidates with LLM", len(candidates))

    response = chain.invoke({
        "job_description": truncate_for_context(job_description, max_chars=3000),
        "candidates": "\n".join(
            f"ID: {c.id}\nResume: {truncate_for_context(c.resume_text, max_chars=1500)}\n"
            for c in candidates
        ),
    })
    raw_text = response_text(response)
    parsed = parse_json_safely(raw_text)

    items = parsed.get("rankings") if isinstance(parsed, dict) else parsed
    if not isinstance(items, list):
        logger.error("Ranking returned invalid structure: %s", raw_text[:200])
        return keyword_rankings(job_description, candidates)

    known = {c.id for c in candidates}
    rankings: dict[str, CandidateRanking] = {}
    for item in items:
        if not isinstance(item, dict) or str(item.get("id")) not in known:
            continue
        try:
            score = int(float(item.get("score", 0)))
        except (TypeError, ValueError):
            score = 0
        cid = str(item["id"])
        rankings.setdefault(cid, CandidateRanking(
            id=cid,
            score=max(0, min(100, score)),
            reason=str(item.get("reason", "")),
        ))

    missing = [c for c in candidates if c.id not in rankings]
    merged = [*rankings.values(), *keyword_rankings(job_description, missing)]
    return sorted(merged, key=lambda r: r.score, reverse=True)
