# src/graph/reference_detector.py — v1
"""Reference detection capability used to discover graph edges.

A detector answers: which of these candidate values does this text
reference? Exact case-insensitive substring matches are resolved by the
graph itself before any detector is asked.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from specweaver.llm.models import ReferenceCandidate, ReferenceMatch

if TYPE_CHECKING:
    from specweaver.llm.base_client import BaseOracle

logger = logging.getLogger(__name__)


def find_exact_matches(text: str, candidates: list[ReferenceCandidate]) -> list[ReferenceMatch]:
    """Candidates whose value occurs in ``text`` (case-insensitive), confidence 1.0."""
    haystack = text.lower()
    return [
        ReferenceMatch(id=c.id, confidence=1.0)
        for c in candidates
        if c.value and c.value.lower() in haystack
    ]


class ReferenceDetector(ABC):
    """Scores candidate values that ``text`` references."""

    # False when the detector can find nothing beyond exact matches.
    semantic: bool = True

    @abstractmethod
    async def detect(
        self, text: str, candidates: list[ReferenceCandidate]
    ) -> list[ReferenceMatch]:
        """Return matches; ids must come from ``candidates``."""


class ExactMatchDetector(ReferenceDetector):
    """Deterministic, offline detector: exact substring matches only."""

    semantic = False

    async def detect(
        self, text: str, candidates: list[ReferenceCandidate]
    ) -> list[ReferenceMatch]:
        return find_exact_matches(text, candidates)


class OracleReferenceDetector(ReferenceDetector):
    """Semantic detection through the oracle's detect_references call.

    Args:
        oracle: Oracle used for detection.
        min_confidence: Matches below this confidence are dropped.
    """

    def __init__(self, oracle: BaseOracle, min_confidence: float = 0.7) -> None:
        self._oracle = oracle
        self._min_confidence = min_confidence

    async def detect(
        self, text: str, candidates: list[ReferenceCandidate]
    ) -> list[ReferenceMatch]:
        if not text or not candidates:
            return []
        known = {c.id for c in candidates}
        matches = await self._oracle.detect_references(text, candidates)
        kept = [
            m for m in matches
            if m.id in known and m.confidence >= self._min_confidence
        ]
        logger.debug(
            "Oracle matched %d/%d candidates (%d above threshold)",
            len(matches), len(candidates), len(kept),
        )
        return kept
