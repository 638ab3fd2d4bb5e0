"""
Echo suppression for voice input.

Narration played through the speakers is picked up by the microphone and
comes back as recognized speech. The suppressor remembers what was recently
spoken and flags transcripts that look like a partial, reordered or slightly
garbled copy of it.
"""

from __future__ import annotations

import logging
import string
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

import Levenshtein

logger = logging.getLogger(__name__)

# Fragments shorter than this are neither remembered nor matched
MIN_TEXT_LENGTH = 3
MIN_WORD_LENGTH = 3


@dataclass(frozen=True, slots=True)
class SpokenUtteranceRecord:
    text: str
    spoken_at: float


def text_similarity(first: str, second: str) -> float:
    """Return 1 - levenshtein / longest length (0 = different, 1 = identical)."""

    if not first or not second:
        return 0.0
    if first == second:
        return 1.0
    longest = max(len(first), len(second))
    return 1.0 - Levenshtein.distance(first, second) / longest


def _significant_words(text: str) -> list[str]:
    words = (word.strip(string.punctuation) for word in text.split())
    return [word for word in words if len(word) >= MIN_WORD_LENGTH]


class EchoSuppressor:
    """
    Short-lived memory of spoken text with fuzzy matching.

    Attributes:
        retention_seconds: How long a spoken fragment is remembered
        max_records: Maximum number of fragments remembered
    """

    def __init__(
        self,
        retention_seconds: float = 5.0,
        max_records: int = 30,
        similarity_threshold: float = 0.5,
        word_overlap_threshold: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.retention_seconds = retention_seconds
        self.max_records = max_records
        self.similarity_threshold = similarity_threshold
        self.word_overlap_threshold = word_overlap_threshold
        self._clock = clock
        self._records: deque[SpokenUtteranceRecord] = deque(maxlen=max_records)

    @property
    def records(self) -> tuple[SpokenUtteranceRecord, ...]:
        self._prune()
        return tuple(self._records)

    def record(self, text: str) -> None:
        """Remember ``text`` as just spoken."""
        self._prune()
        if not text or len(text.strip()) < MIN_TEXT_LENGTH:
            return
        self._records.append(SpokenUtteranceRecord(text=text, spoken_at=self._clock()))
        logger.debug(f"Recorded spoken text: '{text[:40]}'")

    def clear(self) -> None:
        self._records.clear()

    def is_echo(self, candidate: str) -> bool:
        """Return True if ``candidate`` looks like recently spoken text.

        Never raises: an internal failure is logged and treated as "not an
        echo" so real speech is not dropped.
        """
        try:
            reason = self._match(candidate)
        except Exception as exc:
            logger.error(f"Echo detection failed: {exc}", exc_info=True)
            return False
        if reason is not None:
            logger.info(f"Echo ({reason}): '{candidate}'")
            return True
        return False

    def _prune(self) -> None:
        now = self._clock()
        while self._records and now - self._records[0].spoken_at >= self.retention_seconds:
            self._records.popleft()

    def _match(self, candidate: str) -> Optional[str]:
        self._prune()
        if not candidate or len(candidate.strip()) < MIN_TEXT_LENGTH:
            return None

        normalized_candidate = candidate.lower().strip()
        candidate_words = _significant_words(normalized_candidate)

        for spoken in self._records:
            normalized_spoken = spoken.text.lower().strip()

            # Substring match in either direction, even partial
            if (
                normalized_candidate in normalized_spoken
                or normalized_spoken in normalized_candidate
            ):
                return "substring"

            similarity = text_similarity(normalized_candidate, normalized_spoken)
            if similarity >= self.similarity_threshold:
                return f"similarity {similarity:.0%}"

            spoken_words = _significant_words(normalized_spoken)
            if len(candidate_words) >= 2 and len(spoken_words) >= 3:
                spoken_set = set(spoken_words)
                common = [word for word in candidate_words if word in spoken_set]
                overlap = len(common) / len(candidate_words)
                if overlap >= self.word_overlap_threshold:
                    return f"word overlap {overlap:.0%}"

        return None


__all__ = ["EchoSuppressor", "SpokenUtteranceRecord", "text_similarity"]
