"""
Confirmation detector.

Classifies a reply as confirm / reject / modify / unclear from three
regex families. Pure: reads and writes no conversation state.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Pattern, Tuple

from pydantic import BaseModel, ConfigDict, Field

CONFIRMATION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(
        r"\b(yes|yep|yeah|correct|right|add it|log it|that's right|sounds good|perfect|exactly)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(go ahead|do it|sure|okay|ok|looks good|that works)\b", re.IGNORECASE),
    re.compile(r"^(y|yes|yep|✓|👍)$", re.IGNORECASE),
)

REJECTION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\b(no|nope|wrong|incorrect|don't|don't add|not right|cancel)\b", re.IGNORECASE),
    re.compile(r"\b(never mind|nevermind|skip|ignore|delete|remove)\b", re.IGNORECASE),
    re.compile(r"^(n|no|nope|❌|👎)$", re.IGNORECASE),
)

MODIFICATION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\b(actually|but|however|change|different|more|less|instead)\b", re.IGNORECASE),
    re.compile(r"\b(it was|i had|make it|should be|not)\b", re.IGNORECASE),
)

DECISION_THRESHOLD = 0.6
SHORT_MESSAGE_LENGTH = 10
SHORT_MESSAGE_CONFIDENCE = 0.8


class ConfirmationType(str, Enum):
    """How a reply relates to a pending proposal."""

    CONFIRM = "confirm"
    REJECT = "reject"
    MODIFY = "modify"
    UNCLEAR = "unclear"


class ConfirmationResult(BaseModel):
    """Transient classification of one reply; never stored."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    is_confirmation: bool
    is_rejection: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    type: ConfirmationType


def _count(patterns: Tuple[Pattern[str], ...], text: str) -> int:
    return sum(1 for pattern in patterns if pattern.search(text))


def detect_confirmation(message: str) -> ConfirmationResult:
    """
    Classify a reply to a pending proposal.

    Confidence grows with the number of matching pattern families:
    ``min(n * 0.4, 0.9)`` for confirm/reject, ``min(n * 0.3, 0.8)`` for
    modify. Replies shorter than 10 characters with a confirm or reject
    signal get 0.8 outright. A reply carrying both a confirm and a reject
    signal is ``unclear``.

    Args:
        message: Raw reply text

    Returns:
        ConfirmationResult (never raises)

    Example:
        >>> result = detect_confirmation("yes")
        >>> result.is_confirmation, result.confidence
        (True, 0.8)
    """
    text = (message or "").strip().replace("’", "'")

    confirm_matches = _count(CONFIRMATION_PATTERNS, text)
    reject_matches = _count(REJECTION_PATTERNS, text)
    modify_matches = _count(MODIFICATION_PATTERNS, text)

    if confirm_matches and reject_matches:
        kind = ConfirmationType.UNCLEAR
        confidence = 0.0
    elif confirm_matches:
        kind = ConfirmationType.CONFIRM
        confidence = min(confirm_matches * 0.4, 0.9)
    elif reject_matches:
        kind = ConfirmationType.REJECT
        confidence = min(reject_matches * 0.4, 0.9)
    elif modify_matches:
        kind = ConfirmationType.MODIFY
        confidence = min(modify_matches * 0.3, 0.8)
    else:
        kind = ConfirmationType.UNCLEAR
        confidence = 0.0

    if len(text) < SHORT_MESSAGE_LENGTH and kind in (
        ConfirmationType.CONFIRM,
        ConfirmationType.REJECT,
    ):
        confidence = SHORT_MESSAGE_CONFIDENCE

    return ConfirmationResult(
        is_confirmation=kind is ConfirmationType.CONFIRM and confidence > DECISION_THRESHOLD,
        is_rejection=kind is ConfirmationType.REJECT and confidence > DECISION_THRESHOLD,
        confidence=confidence,
        type=kind,
    )
