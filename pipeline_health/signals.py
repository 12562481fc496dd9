"""
Deterministic sub-scores for pipeline health.

Each function takes records already fetched for one account and returns a
float in [0, 1]. None of them touch the network or the data source.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .config import (
    COMPLETED_STATUS,
    FRAMEWORK_FIELDS,
    FRAMEWORK_WEIGHTS,
    PRIMARY_FRAMEWORK,
    READINESS_FIELDS,
    RECENCY_DECAY_DAYS,
    TASK_WINDOW_DAYS,
    UNKNOWN_MARKERS,
)
from .schemas import ActionItem, QualificationNote, ReadinessFlags, Transcript

SECONDS_PER_DAY = 24 * 60 * 60


def is_field_known(value: Any) -> bool:
    """True if a note field holds real content rather than an 'unknown' marker"""
    if not isinstance(value, str) or not value.strip():
        return False
    return not any(marker in value for marker in UNKNOWN_MARKERS)


def latest_notes_by_framework(notes: List[QualificationNote]) -> Dict[str, QualificationNote]:
    """Keep only the most recently modified note per framework"""
    latest: Dict[str, QualificationNote] = {}
    for note in notes:
        current = latest.get(note.framework)
        if current is None or note.last_modified > current.last_modified:
            latest[note.framework] = note
    return latest


def framework_completeness(note: QualificationNote) -> float:
    """Share of the framework's expected fields that are known"""
    fields = FRAMEWORK_FIELDS.get(note.framework)
    if not fields:
        return 0.0
    known = sum(1 for field in fields if is_field_known(note.content.get(field)))
    return known / len(fields)


def calculate_framework_coverage(notes: List[QualificationNote]) -> float:
    """
    Weighted field coverage over the frameworks the account actually has notes for.

    Weights are re-normalised over the frameworks present.
    """
    latest = latest_notes_by_framework(notes)

    weighted_total = 0.0
    weight_used = 0.0
    for framework, weight in FRAMEWORK_WEIGHTS.items():
        note = latest.get(framework)
        if note is None:
            continue
        weighted_total += framework_completeness(note) * weight
        weight_used += weight

    if weight_used == 0:
        return 0.0
    return min(1.0, weighted_total / weight_used)


def latest_transcript(transcripts: List[Transcript]) -> Optional[Transcript]:
    if not transcripts:
        return None
    return max(transcripts, key=lambda t: t.created_at)


def calculate_recency(transcripts: List[Transcript], now: datetime) -> float:
    """Exponential decay exp(-days/30) since the newest transcript"""
    latest = latest_transcript(transcripts)
    if latest is None:
        return 0.0

    days_since = (now - latest.created_at).total_seconds() / SECONDS_PER_DAY
    # Transcripts stamped slightly in the future count as fresh
    days_since = max(0.0, days_since)
    return math.exp(-days_since / RECENCY_DECAY_DAYS)


def calculate_task_progress(action_items: List[ActionItem], now: datetime) -> float:
    """Completed share of action items created inside the trailing window"""
    window_start = now - timedelta(days=TASK_WINDOW_DAYS)
    recent = [item for item in action_items if item.created_at >= window_start]
    if not recent:
        return 0.0

    completed = sum(1 for item in recent if item.status == COMPLETED_STATUS)
    return completed / len(recent)


def extract_readiness_flags(notes: List[QualificationNote]) -> ReadinessFlags:
    """Readiness flags read straight from the latest MEDDPICC note's fields"""
    note = latest_notes_by_framework(notes).get(PRIMARY_FRAMEWORK)
    if note is None:
        return ReadinessFlags()

    return ReadinessFlags(**{
        flag: is_field_known(note.content.get(field))
        for flag, field in READINESS_FIELDS.items()
    })
