import re
from typing import Dict


# Each rule is matched against the lower-cased transcript
METRIC_PATTERN = re.compile(
    r"[$€£]\s?\d[\d,]*(?:\.\d+)?"
    r"|\b\d+(?:\.\d+)?\s?%"
    r"|\b\d[\d,]*(?:\.\d+)?\s?(?:million|thousand|billion|mm|bn|k|m)\b"
)

ROLE_PATTERN = re.compile(
    r"\b(?:ceo|cfo|cto|coo|cro|cmo|cio|svp|evp|vp|vice president|director|manager"
    r"|head of|chief \w+ officer|founder|co-founder)\b"
)

TIMELINE_PATTERN = re.compile(
    r"\b(?:next|this|coming) (?:week|month|quarter|year)\b"
    r"|\bend of (?:the )?(?:week|month|quarter|year)\b"
    r"|\bq[1-4]\b"
    r"|\bfy ?\d{2,4}\b"
    r"|\b(?:january|february|march|april|june|july|august|september|october|november|december)\b"
    r"|\bmay \d{1,2}\b"
    r"|\b(?:tomorrow|eod|eow)\b"
)

COMMITMENT_PATTERN = re.compile(
    r"\b(?:will|we'll|i'll|plan to|planning to|need to|going to|commit to|committed to"
    r"|schedule|scheduled|scheduling|follow up|follow-up|next steps?)\b"
)

RULE_POINTS = 0.25


class QualityRules:
    """
    Rule-based conversation quality scoring.

    Awards 0.25 for each signal found in the transcript: a money or metric
    figure, a named business role, a date or timeline, and a committed action.
    """

    def check_metrics(self, text: str) -> bool:
        return bool(METRIC_PATTERN.search(text.lower()))

    def check_roles(self, text: str) -> bool:
        return bool(ROLE_PATTERN.search(text.lower()))

    def check_timeline(self, text: str) -> bool:
        return bool(TIMELINE_PATTERN.search(text.lower()))

    def check_commitment(self, text: str) -> bool:
        return bool(COMMITMENT_PATTERN.search(text.lower()))

    def evaluate(self, text: str) -> Dict[str, bool]:
        """Run every rule and report which fired"""
        return {
            "metrics": self.check_metrics(text),
            "roles": self.check_roles(text),
            "timeline": self.check_timeline(text),
            "commitment": self.check_commitment(text),
        }

    def score(self, text: str) -> float:
        if not text:
            return 0.0
        fired = sum(1 for matched in self.evaluate(text).values() if matched)
        return min(1.0, fired * RULE_POINTS)
