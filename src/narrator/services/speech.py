"""Capability interfaces implemented by the speech and presentation layers."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from narrator.schemas.commands import NavigationAction
from narrator.schemas.narration import SourceRef, Voice


class SpeechSynthesizer(Protocol):
    async def synthesize(self, text: str, voice: Voice = "narrator") -> Any:
        """Return an audio handle, or the text itself for a fallback voice."""
        ...

    async def play(self, audio: Any) -> None:
        """Play a synthesized result and return once playback has finished."""
        ...

    def stop(self) -> None:
        """Stop whatever is currently playing."""
        ...


class SpeechRecognizer(Protocol):
    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class NarrationPresenter(Protocol):
    def show_unit(self, unit_index: int, source_ref: Optional[SourceRef]) -> None:
        """Highlight the unit that is now being spoken."""
        ...

    def clear_highlight(self) -> None:
        ...


class HostApplication(Protocol):
    async def submit_command(self, text: str, *, literal: bool = False) -> None:
        """Send input to the running game."""
        ...

    def handle_action(self, action: NavigationAction) -> None:
        """Save/restore/hint style actions the narrator cannot perform itself."""
        ...


__all__ = [
    "HostApplication",
    "NarrationPresenter",
    "SpeechRecognizer",
    "SpeechSynthesizer",
]
