"""Command classification results and input mode."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

NavigationKind = Literal[
    "restart",
    "back",
    "pause",
    "play",
    "skip",
    "skip_to_end",
    "mute",
    "unmute",
    "status",
    "hint",
    "unlock",
    "quick_save",
    "quick_load",
    "restore_latest",
    "restore_slot",
]

# Actions the narration engine cannot perform itself
HOST_ACTIONS: frozenset[str] = frozenset(
    {"hint", "unlock", "quick_save", "quick_load", "restore_latest", "restore_slot"}
)


@dataclass(frozen=True, slots=True)
class NavigationAction:
    """Playback or app control command. Never forwarded as game input."""

    kind: NavigationKind
    args: tuple[int, ...] = ()

    @property
    def count(self) -> int:
        return self.args[0] if self.args else 1


@dataclass(frozen=True, slots=True)
class LiteralText:
    """Text sent verbatim, bypassing any downstream translation."""

    text: str


@dataclass(frozen=True, slots=True)
class ForwardText:
    """Free text for the host application."""

    text: str


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: str


CommandOutcome = Union[NavigationAction, LiteralText, ForwardText, Rejected]


@dataclass(slots=True)
class InputMode:
    """Listener state the interpreter gates on."""

    muted: bool = False
    narrating: bool = False
    paused_for_sound_input: bool = False
    # Set when a transcript was consumed as a navigation command
    command_processed: bool = False


__all__ = [
    "CommandOutcome",
    "ForwardText",
    "HOST_ACTIONS",
    "InputMode",
    "LiteralText",
    "NavigationAction",
    "NavigationKind",
    "Rejected",
]
