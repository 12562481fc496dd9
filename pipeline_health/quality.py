"""
Conversation quality signal.

Two strategies produce a QualityAssessment: an oracle (normally an LLM) and
the rule-based scorer in rules.py. QualitySignalEstimator picks between them
with a single try/fallback boundary, so oracle failures never reach callers.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .config import NOTE_SUMMARY_CHARS, TRANSCRIPT_EXCERPT_CHARS
from .errors import OracleResponseError
from .rules import QualityRules
from .schemas import QualificationNote, QualityAssessment, Transcript
from .signals import latest_transcript

logger = logging.getLogger(__name__)


class QualityOracle(ABC):
    """External scorer returning a quality score and readiness flags in one call"""

    @abstractmethod
    async def estimate_quality(self, transcript_excerpt: str, notes_summary: str) -> QualityAssessment:
        ...


class RuleBasedQualityEstimator:
    """Deterministic fallback; never derives readiness flags"""

    def __init__(self, rules: Optional[QualityRules] = None):
        self.rules = rules or QualityRules()

    def estimate(self, transcript_text: str) -> QualityAssessment:
        return QualityAssessment(score=self.rules.score(transcript_text), source="rules")


def summarize_notes(notes: List[QualificationNote], limit: int = NOTE_SUMMARY_CHARS) -> str:
    """One line per note: framework name and its truncated JSON content"""
    lines = []
    for note in notes:
        content = json.dumps(note.content, ensure_ascii=False, default=str)
        lines.append(f"{note.framework}: {content[:limit]}")
    return "\n".join(lines)


class QualitySignalEstimator:
    def __init__(self, oracle: Optional[QualityOracle] = None,
                 fallback: Optional[RuleBasedQualityEstimator] = None,
                 timeout: Optional[float] = None):
        self.oracle = oracle
        self.fallback = fallback or RuleBasedQualityEstimator()
        self.timeout = timeout

    async def estimate(self, transcripts: List[Transcript],
                       notes: List[QualificationNote]) -> QualityAssessment:
        """Score the most recent transcript; 0 when the account has none"""
        transcript = latest_transcript(transcripts)
        if transcript is None:
            return QualityAssessment(score=0.0, source="none")

        if self.oracle is None:
            return self.fallback.estimate(transcript.content)

        excerpt = transcript.content[:TRANSCRIPT_EXCERPT_CHARS]
        try:
            result = await asyncio.wait_for(
                self.oracle.estimate_quality(excerpt, summarize_notes(notes)),
                timeout=self.timeout,
            )
            if not isinstance(result, QualityAssessment):
                raise OracleResponseError(f"Oracle returned {type(result).__name__}, expected QualityAssessment")
            return result
        except Exception as e:
            logger.warning("Quality oracle failed for transcript %s, using rule-based fallback: %s",
                           transcript.id, e)
            return self.fallback.estimate(transcript.content)
