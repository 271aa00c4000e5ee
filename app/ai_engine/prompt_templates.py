"""
app/ai_engine/prompt_templates.py — LangChain prompt templates for the AI helpers.

Two prompt chains:
  1. JOB_DESCRIPTION  — title + skills → markdown job description
  2. CANDIDATE_RANKING — job description + candidate resumes → ranking JSON
"""

from langchain_core.prompts import ChatPromptTemplate


# ── 1. Job Description ────────────────────────────────────────────────────────

JOB_DESCRIPTION_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You are an expert recruiter who writes compelling job descriptions.",
    ),
    (
        "human",
        """Generate a professional job description for a {title} position.

REQUIRED SKILLS:
{skills}

INSTRUCTIONS:
- Write in markdown with these sections: About the Role, Responsibilities,
  Required Skills, Qualifications, Nice to Have
- Keep it under 450 words
- Use inclusive, plain language; no salary figures unless given
- Return ONLY the markdown, no preamble
""",
    ),
])


# ── 2. Candidate Ranking ──────────────────────────────────────────────────────

CANDIDATE_RANKING_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        (
            "You are an expert recruiter who can match candidates to job descriptions. "
            "Score strictly on evidence in each resume."
        ),
    ),
    (
        "human",
        """Rank the following candidates for this job description.

JOB DESCRIPTION:
{job_description}

CANDIDATES:
{candidates}

Return ONLY a valid JSON object in this exact format:
{{
  "rankings": [
    {{"id": "<candidate id>", "score": <integer 0-100>, "reason": "<one sentence>"}}
  ]
}}
Include every candidate exactly once, highest score first.
""",
    ),
])
