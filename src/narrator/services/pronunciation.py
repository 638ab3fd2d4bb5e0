"""Pronunciation fixes applied to text right before synthesis."""

import logging
import re
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# Display-only characters that should never be spoken
_DISPLAY_CHARS = re.compile(r"[*>]")
_WHITESPACE = re.compile(r"\s+")


class PronunciationFixer:
    """Rewrites words the synthesizer tends to mispronounce."""

    def __init__(self, pronunciations: Optional[Mapping[str, str]] = None):
        self._pronunciations: dict[str, str] = dict(pronunciations or {})
        self._patterns = self._compile(self._pronunciations)

    @staticmethod
    def _compile(pronunciations: Mapping[str, str]) -> list[tuple[re.Pattern[str], str]]:
        # Longest words first so "Anchorhead Bay" wins over "Anchorhead"
        words = sorted(pronunciations, key=len, reverse=True)
        return [
            (re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE), pronunciations[word])
            for word in words
            if word
        ]

    @property
    def pronunciations(self) -> dict[str, str]:
        return dict(self._pronunciations)

    def add(self, word: str, pronunciation: str) -> None:
        self._pronunciations[word] = pronunciation
        self._patterns = self._compile(self._pronunciations)

    def remove(self, word: str) -> None:
        if self._pronunciations.pop(word, None) is not None:
            self._patterns = self._compile(self._pronunciations)

    def fix(self, text: str) -> str:
        fixed = _DISPLAY_CHARS.sub("", text)
        fixed = _WHITESPACE.sub(" ", fixed).strip()
        for pattern, pronunciation in self._patterns:
            fixed = pattern.sub(lambda _match: pronunciation, fixed)
        if fixed != text:
            logger.debug(f"Pronunciation: '{text[:40]}' -> '{fixed[:40]}'")
        return fixed


__all__ = ["PronunciationFixer"]
