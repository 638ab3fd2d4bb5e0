"""Classify spoken or typed input as navigation, literal text or game input."""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from narrator.schemas.commands import (
    CommandOutcome,
    ForwardText,
    InputMode,
    LiteralText,
    NavigationAction,
    NavigationKind,
    Rejected,
)

logger = logging.getLogger(__name__)

NUMBER_WORDS: dict[str, int] = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

UNMUTE_PHRASES = frozenset({"unmute", "on mute", "un mute"})

# Fixed phrases, matched against the lowercased, trimmed transcript
NAVIGATION_PHRASES: dict[str, NavigationKind] = {
    "restart": "restart",
    "reset": "restart",
    "repeat": "restart",
    "back": "back",
    "go back": "back",
    "stop": "pause",
    "pause": "pause",
    "play": "play",
    "resume": "play",
    "skip": "skip",
    "skip all": "skip_to_end",
    "skip to end": "skip_to_end",
    "skip to the end": "skip_to_end",
    "end": "skip_to_end",
    "mute": "mute",
    **{phrase: "unmute" for phrase in UNMUTE_PHRASES},
    "status": "status",
    "hint": "hint",
    "get hint": "hint",
    "unlock": "unlock",
    "quick save": "quick_save",
    "quicksave": "quick_save",
    "quick load": "quick_load",
    "quickload": "quick_load",
    "quick restore": "quick_load",
    "quickrestore": "quick_load",
    "load": "restore_latest",
    "restore": "restore_latest",
    "load game": "restore_latest",
    "restore game": "restore_latest",
}

# Bare words that submit an empty command ("press any key" screens)
FILLER_PHRASES = frozenset({"enter", "press enter", "hit enter"})

_COUNT = r"(\d+|" + "|".join(NUMBER_WORDS) + r")"
_BACK_COUNT = re.compile(rf"^(?:go\s+)?back\s+{_COUNT}$")
_SKIP_COUNT = re.compile(rf"^(?:skip(?:\s+forward)?|forward)\s+{_COUNT}$")
_RESTORE_SLOT = re.compile(r"^(?:load|restore)\s+slot\s+(\d+)$")
_PRINT = re.compile(r"^\s*print\s+(.+?)\s*$", re.IGNORECASE | re.DOTALL)
_TRAILING_PUNCTUATION = re.compile(r"[.!?,]+$")
_SINGLE_LETTER = re.compile(r"^[A-Za-z]$")


def parse_count(word: str) -> int:
    """Parse a digit string or number word ("three") into an integer."""
    if word in NUMBER_WORDS:
        return NUMBER_WORDS[word]
    return int(word)


def collapse_spelled_letters(transcript: str) -> tuple[str, list[str]]:
    """
    Join runs of 3+ single-letter tokens into one uppercase word.

    Returns the rewritten transcript and the words that were formed, e.g.
    ``"read x y z"`` becomes ``("read XYZ", ["XYZ"])``.
    """
    words = transcript.split()
    rebuilt: list[str] = []
    spelled: list[str] = []
    run: list[str] = []

    def close_run() -> None:
        if len(run) >= 3:
            word = "".join(run).upper()
            rebuilt.append(word)
            spelled.append(word)
        else:
            rebuilt.extend(run)
        run.clear()

    for word in words:
        if _SINGLE_LETTER.match(word):
            run.append(word)
            continue
        close_run()
        rebuilt.append(word)
    close_run()

    if not spelled:
        return transcript, []
    return " ".join(rebuilt), spelled


class CommandInterpreter:
    """
    Turns a transcript into a CommandOutcome.

    Navigation phrases always win, even mid-narration. Game input is rejected
    while narrating so a stale command never fires after the fact.

    Attributes:
        on_confirmation: Called with short confirmation messages to speak,
            e.g. ``"Spelled: XYZ"``
    """

    def __init__(self, on_confirmation: Optional[Callable[[str], None]] = None):
        self.on_confirmation = on_confirmation

    def interpret(
        self,
        transcript: str,
        mode: Optional[InputMode] = None,
        confidence: Optional[float] = None,
    ) -> CommandOutcome:
        """
        Classify ``transcript`` for the given input mode.

        ``confidence`` is only logged; gating on it is left to the caller.
        On a navigation match ``mode.command_processed`` is set and
        ``mode.paused_for_sound_input`` cleared.
        """
        mode = mode if mode is not None else InputMode()
        transcript = (transcript or "").strip()

        transcript, spelled = collapse_spelled_letters(transcript)
        for word in spelled:
            self._confirm(f"Spelled: {word}")

        lower = _TRAILING_PUNCTUATION.sub("", transcript.lower()).strip()

        if mode.muted:
            if lower in UNMUTE_PHRASES:
                return self._navigation(NavigationAction("unmute"), mode, confidence)
            logger.debug(f"Ignored while muted: '{transcript}'")
            return Rejected("muted")

        if not lower:
            return Rejected("empty")

        action = self._match_navigation(lower)
        if action is not None:
            return self._navigation(action, mode, confidence)

        if mode.narrating and not mode.paused_for_sound_input:
            logger.info(f"Blocked during narration: '{transcript}'")
            return Rejected("narrating")

        literal = _PRINT.match(transcript)
        if literal:
            return LiteralText(literal.group(1))

        if lower in FILLER_PHRASES:
            return ForwardText("")

        return ForwardText(transcript)

    def _match_navigation(self, lower: str) -> Optional[NavigationAction]:
        kind = NAVIGATION_PHRASES.get(lower)
        if kind is not None:
            return NavigationAction(kind)

        match = _BACK_COUNT.match(lower)
        if match:
            return NavigationAction("back", (parse_count(match.group(1)),))

        match = _SKIP_COUNT.match(lower)
        if match:
            return NavigationAction("skip", (parse_count(match.group(1)),))

        match = _RESTORE_SLOT.match(lower)
        if match:
            return NavigationAction("restore_slot", (int(match.group(1)),))

        return None

    def _navigation(
        self,
        action: NavigationAction,
        mode: InputMode,
        confidence: Optional[float],
    ) -> NavigationAction:
        mode.command_processed = True
        mode.paused_for_sound_input = False
        if confidence is None:
            logger.info(f"Navigation command: {action.kind} {list(action.args)}")
        else:
            logger.info(
                f"Navigation command: {action.kind} {list(action.args)} "
                f"(confidence {confidence:.2f})"
            )
        return action

    def _confirm(self, message: str) -> None:
        logger.info(message)
        if self.on_confirmation is None:
            return
        try:
            self.on_confirmation(message)
        except Exception as exc:
            logger.warning(f"Confirmation callback failed: {exc}", exc_info=True)


__all__ = [
    "CommandInterpreter",
    "FILLER_PHRASES",
    "NAVIGATION_PHRASES",
    "NUMBER_WORDS",
    "collapse_spelled_letters",
    "parse_count",
]
