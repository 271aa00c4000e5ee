"""
app/services/reply_detector.py — Classifies inbound emails against outreach.

detect_reply(content)            → ReplyAnalysis (is it a reply, what kind)
extract_sentiment(content)       → Sentiment
get_recommended_action(analysis) → RecommendedAction

Pure pattern matching; no network calls. HTML bodies are flattened first.
"""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Optional

from app.ingestion.normalizer import strip_html

logger = logging.getLogger(__name__)

# Reply types
POSITIVE = "positive"
NEGATIVE = "negative"
QUESTION = "question"
NEUTRAL = "neutral"
OUT_OF_OFFICE = "out-of-office"
UNSUBSCRIBE = "unsubscribe"


# ── Patterns ─────────────────────────────────────────────────────────────────

REPLY_INDICATORS = [
    re.compile(r"^(Re:|RE:|Fwd:|FWD:|Fw:|FW:)"),
    re.compile(r"^On .+ wrote:$", re.M),
    re.compile(r"^From:.+$", re.M),
    re.compile(r"^Sent:.+$", re.M),
    re.compile(r"^To:.+$", re.M),
    re.compile(r"^Subject:.+$", re.M),
    re.compile(r"^>", re.M),
    re.compile(r"^>>", re.M),
    re.compile(r"^\|", re.M),
    re.compile(r"^-{3,} Original Message -{3,}", re.M),
    re.compile(r"^-{3,} Forwarded Message -{3,}", re.M),
    re.compile(r"thanks for (your email|reaching out|getting in touch)", re.I),
    re.compile(r"in response to your (email|message)", re.I),
    re.compile(r"regarding your (email|message|inquiry)", re.I),
    re.compile(r"following up on", re.I),
    re.compile(r"as discussed", re.I),
    re.compile(r"per our conversation", re.I),
]

OOO_PATTERNS = [
    re.compile(p, re.I) for p in (
        r"out of (the )?office",
        r"away from (my |the )?office",
        r"on vacation",
        r"on leave",
        r"currently away",
        r"auto(-)?reply",
        r"automatic reply",
        r"will be back",
        r"return to the office",
        r"limited access to email",
    )
]

UNSUBSCRIBE_PATTERNS = [
    re.compile(p, re.I) for p in (
        r"unsubscribe",
        r"stop (sending|email)",
        r"remove me",
        r"take me off",
        r"opt out",
        r"no longer interested",
        r"don't contact",
        r"cease communication",
    )
]

POSITIVE_PATTERNS = [
    re.compile(p, re.I) for p in (
        r"interested",
        r"let's (talk|chat|discuss|connect|meet)",
        r"schedule a (call|meeting|discussion)",
        r"available (for|to)",
        r"sounds good",
        r"looking forward",
        r"yes,? (i|we) (would|can|are)",
        r"definitely",
        r"absolutely",
        r"love to (learn|hear|discuss)",
        r"tell me more",
        r"send (me |us )?(more )?info",
        r"what's the next step",
        r"how do we proceed",
    )
]

NEGATIVE_PATTERNS = [
    re.compile(p, re.I) for p in (
        r"not interested",
        r"no thanks",
        r"not a (good |right )?fit",
        r"not the right time",
        r"already have",
        r"happy with (our |my )?current",
        r"not looking",
        r"don't need",
        r"pass on this",
        r"maybe (in the future|later|down the road)",
        r"not in the budget",
    )
]

QUESTION_PATTERNS = [
    re.compile(r"\?$", re.M),
    re.compile(r"^(what|when|where|who|why|how|can you|could you|would you|do you|does|is there)", re.I),
    re.compile(r"tell me (more )?about", re.I),
    re.compile(r"can you (explain|clarify|provide|send)", re.I),
    re.compile(r"what (is|are|does|do)", re.I),
    re.compile(r"how (much|many|long|does)", re.I),
    re.compile(r"pricing|cost|budget|investment", re.I),
    re.compile(r"more (information|details|info)", re.I),
]

QUOTE_START = re.compile(r"^>|^On .+ wrote:|^-{3,} Original Message", re.I)

POSITIVE_WORDS = [
    "great", "excellent", "wonderful", "fantastic", "amazing",
    "interested", "excited", "love", "perfect", "yes",
    "absolutely", "definitely", "thanks", "appreciate",
]

NEGATIVE_WORDS = [
    "not", "no", "never", "unfortunately", "unable",
    "cannot", "won't", "wouldn't", "don't", "doesn't",
    "disappointed", "frustrated", "unhappy", "bad",
]


# ── Output dataclasses ────────────────────────────────────────────────────────

@dataclass
class ReplyAnalysis:
    is_reply: bool
    reply_type: Optional[str]
    confidence: float
    should_stop_sequence: bool
    extracted_text: Optional[str] = None
    intent: Optional[str] = None
    suggested_action: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Sentiment:
    sentiment: str          # positive / negative / neutral
    score: float            # 0.0 – 1.0


@dataclass
class RecommendedAction:
    action: str
    priority: str           # high / medium / low
    template: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


# ── Detection ────────────────────────────────────────────────────────────────

def _count_matches(patterns: list[re.Pattern], text: str) -> int:
    return sum(1 for pattern in patterns if pattern.search(text))


def _extract_reply_text(content: str) -> str:
    """Keep only the new text above the first quoted block."""
    lines = content.split("\n")
    quote_index = next((i for i, line in enumerate(lines) if QUOTE_START.search(line)), -1)
    if quote_index > 0:
        return "\n".join(lines[:quote_index]).strip()
    return content


def detect_reply(email_content: Optional[str]) -> ReplyAnalysis:
    """
    Decide whether an email is a reply and classify its intent.

    Out-of-office and unsubscribe win outright; otherwise the dominant of
    positive / negative / question pattern counts decides, falling back
    to neutral.
    """
    content = strip_html(email_content)
    if not content.strip():
        return ReplyAnalysis(is_reply=False, reply_type=None, confidence=0.0, should_stop_sequence=False)

    lowered = content.lower()
    reply_score = 0.3 * _count_matches(REPLY_INDICATORS, content)
    extracted = _extract_reply_text(content)

    if any(p.search(lowered) for p in OOO_PATTERNS):
        return ReplyAnalysis(
            is_reply=True,
            reply_type=OUT_OF_OFFICE,
            confidence=0.95,
            should_stop_sequence=True,
            extracted_text=extracted,
            intent="Out of office auto-reply",
            suggested_action="Pause sequence and set reminder to follow up when they return",
        )

    if any(p.search(lowered) for p in UNSUBSCRIBE_PATTERNS):
        return ReplyAnalysis(
            is_reply=True,
            reply_type=UNSUBSCRIBE,
            confidence=0.98,
            should_stop_sequence=True,
            extracted_text=extracted,
            intent="Unsubscribe request",
            suggested_action="Stop all sequences and mark as unsubscribed",
        )

    positive = _count_matches(POSITIVE_PATTERNS, lowered)
    negative = _count_matches(NEGATIVE_PATTERNS, lowered)
    questions = _count_matches(QUESTION_PATTERNS, lowered)

    reply_type = NEUTRAL
    intent = "General response"
    should_stop = False
    action = "Review and respond manually"
    confidence = 0.5

    if positive > negative and positive > questions:
        reply_type = POSITIVE
        intent = "Interested in learning more"
        should_stop = True
        action = "Stop sequence and engage personally - they are interested!"
        confidence = min(0.9, 0.5 + positive * 0.15)
    elif negative > positive and negative > questions:
        reply_type = NEGATIVE
        intent = "Not interested at this time"
        should_stop = True
        action = "Stop sequence and mark as not interested"
        confidence = min(0.9, 0.5 + negative * 0.15)
    elif questions > 0:
        reply_type = QUESTION
        intent = "Has questions or needs more information"
        should_stop = True
        action = "Stop sequence and answer their questions"
        confidence = min(0.85, 0.5 + questions * 0.2)

    is_reply = reply_score > 0.5
    if is_reply and reply_type == NEUTRAL:
        should_stop = True
        action = "Stop sequence - manual review needed"

    return ReplyAnalysis(
        is_reply=is_reply or reply_score > 0.3,
        reply_type=reply_type,
        confidence=round(confidence, 2),
        should_stop_sequence=should_stop,
        extracted_text=extracted,
        intent=intent,
        suggested_action=action,
    )


def extract_sentiment(email_content: Optional[str]) -> Sentiment:
    """Word-list sentiment: ratio of positive vs negative marker words."""
    content = strip_html(email_content).lower()
    if not content:
        return Sentiment(sentiment="neutral", score=0.5)

    positive_count = sum(1 for word in POSITIVE_WORDS if word in content)
    negative_count = sum(1 for word in NEGATIVE_WORDS if word in content)

    total_words = max(len(content.split()), 1)
    positive_ratio = positive_count / total_words
    negative_ratio = negative_count / total_words

    if positive_ratio > negative_ratio * 1.5:
        return Sentiment(sentiment="positive", score=min(1.0, positive_ratio * 10))
    if negative_ratio > positive_ratio * 1.5:
        return Sentiment(sentiment="negative", score=min(1.0, negative_ratio * 10))
    return Sentiment(sentiment="neutral", score=0.5)


def should_continue_sequence(analysis: ReplyAnalysis) -> bool:
    return not analysis.should_stop_sequence and not analysis.is_reply


def get_recommended_action(analysis: ReplyAnalysis) -> RecommendedAction:
    if not analysis.is_reply:
        return RecommendedAction(action="Continue sequence as planned", priority="low")

    if analysis.reply_type == POSITIVE:
        return RecommendedAction(
            action="Schedule a call or meeting",
            priority="high",
            template=(
                "Thanks for your interest! I'd love to discuss this further. "
                "Are you available for a brief call this week?"
            ),
        )
    if analysis.reply_type == NEGATIVE:
        return RecommendedAction(
            action="Mark as not interested and stop outreach",
            priority="medium",
            template="Thank you for your response. I'll make sure we don't reach out again. Best of luck!",
        )
    if analysis.reply_type == QUESTION:
        return RecommendedAction(
            action="Answer their questions promptly",
            priority="high",
            template="Thanks for your questions! Let me provide you with more details...",
        )
    if analysis.reply_type == OUT_OF_OFFICE:
        return RecommendedAction(action="Pause and retry when they return", priority="low")
    if analysis.reply_type == UNSUBSCRIBE:
        return RecommendedAction(action="Remove from all sequences immediately", priority="high")

    return RecommendedAction(action=analysis.suggested_action or "Review manually", priority="medium")
