"""
Playback Session Controller.

This module drives sequential narration of a list of units. Each call to
``start`` opens a new session with a fresh id; the playback loop captures that
id and re-checks it after every suspension point (awaiting synthesis, awaiting
playback). Pausing, seeking and new content all bump the id, so a superseded
loop notices on its next check and exits without touching shared state.

Architecture:
    units → start() → _run(session_id) ─┬─ synthesize(unit) ─▶ re-check id
                                        └─ play(audio)       ─▶ re-check id → next unit

Usage:
    controller = PlaybackSessionController(synthesizer, presenter, echo=echo)
    controller.start(units)          # schedules the loop on the running event loop
    controller.skip(-1)              # smart back
    controller.pause()
    controller.resume()
    await controller.join()          # wait until the current loop exits
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Literal, Optional, Sequence

from narrator.schemas.narration import NarrationUnit, Voice

if TYPE_CHECKING:
    from narrator.services.echo_suppressor import EchoSuppressor
    from narrator.services.speech import NarrationPresenter, SpeechSynthesizer

logger = logging.getLogger(__name__)

SessionStatus = Literal["idle", "playing", "paused", "ended"]

DEFAULT_SMART_BACK_SECONDS = 3.0


@dataclass(slots=True)
class NarrationSession:
    """State of the current narration session."""

    id: int = 0
    units: list[NarrationUnit] = field(default_factory=list)
    index: int = 0
    status: SessionStatus = "idle"
    unit_started_at: float = 0.0

    @property
    def at_end(self) -> bool:
        return self.index >= len(self.units)

    @property
    def current_unit(self) -> Optional[NarrationUnit]:
        if 0 <= self.index < len(self.units):
            return self.units[self.index]
        return None


class PlaybackSessionController:
    """
    Cancellable sequential playback of narration units.

    Attributes:
        autoplay: Resume playback after navigation (skip, back, restart)
        smart_back_seconds: Within this window "back" steps to the previous unit
    """

    def __init__(
        self,
        synthesizer: "SpeechSynthesizer",
        presenter: Optional["NarrationPresenter"] = None,
        *,
        echo: Optional["EchoSuppressor"] = None,
        prepare_text: Optional[Callable[[str], str]] = None,
        autoplay: bool = True,
        smart_back_seconds: float = DEFAULT_SMART_BACK_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._synthesizer = synthesizer
        self._presenter = presenter
        self._echo = echo
        self._prepare_text = prepare_text
        self.autoplay = autoplay
        self.smart_back_seconds = smart_back_seconds
        self._clock = clock
        self._session = NarrationSession()
        self._task: Optional[asyncio.Task[None]] = None
        self._announcement: Optional[asyncio.Task[None]] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def session(self) -> NarrationSession:
        return self._session

    @property
    def session_id(self) -> int:
        return self._session.id

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def index(self) -> int:
        return self._session.index

    @property
    def units(self) -> list[NarrationUnit]:
        return self._session.units

    @property
    def is_playing(self) -> bool:
        return self._session.status == "playing"

    def is_current(self, session_id: int) -> bool:
        return session_id == self._session.id

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def load(self, units: Sequence[NarrationUnit]) -> None:
        """Replace the units wholesale (new content) without starting playback."""
        self._hard_stop()
        self._session.units = list(units)
        self._session.index = 0
        self._session.unit_started_at = 0.0
        logger.debug(f"Loaded {len(self._session.units)} narration unit(s)")

    def start(
        self,
        units: Optional[Sequence[NarrationUnit]] = None,
        from_index: int = 0,
    ) -> asyncio.Task[None]:
        """
        Open a new session and schedule the playback loop.

        Must be called from a running event loop. Any loop from an earlier
        session exits at its next id check.

        Args:
            units: New units to play; None keeps the current ones
            from_index: Index of the first unit to play (clamped to range)

        Returns:
            The task running the playback loop
        """
        self._hard_stop()
        session = self._session
        if units is not None:
            session.units = list(units)
        session.index = max(0, min(from_index, len(session.units)))
        session.status = "playing"
        session_id = session.id

        logger.info(
            f"Narration session {session_id} started at unit {session.index}"
            f" of {len(session.units)}"
        )
        self._task = asyncio.create_task(self._run(session_id))
        return self._task

    def pause(self) -> bool:
        """Stop audio but keep units and position. Returns False if nothing to pause."""
        session = self._session
        if not session.units or session.status == "ended" or session.at_end:
            return False
        self._invalidate()
        session.status = "paused"
        logger.info(f"Narration paused at unit {session.index}")
        return True

    def resume(self) -> Optional[asyncio.Task[None]]:
        """Start a new session from the stored position."""
        session = self._session
        if not session.units or session.at_end:
            return None
        return self.start(from_index=session.index)

    def stop(self) -> None:
        """Hard stop: end playback and remove the highlight, keeping the position."""
        self._hard_stop()
        self._clear_highlight()

    def skip(self, offset: int) -> bool:
        """
        Move ``offset`` units forward (positive) or back (negative).

        For ``offset == -1`` the smart back rule applies: shortly after a unit
        started, or while paused, go to the previous unit; otherwise restart
        the current one. From past the end, back lands on the last unit.

        Returns:
            False when the target is out of range (nothing happens)
        """
        session = self._session
        total = len(session.units)
        if total == 0:
            return False

        target = session.index + offset
        if offset == -1:
            if session.index >= total:
                target = total - 1
            elif (
                session.status == "paused"
                or self._elapsed() < self.smart_back_seconds
            ) and session.index > 0:
                target = session.index - 1
            else:
                target = session.index

        if not 0 <= target < total:
            logger.debug(f"Skip target {target} out of range, ignoring")
            return False

        self._seek(target)
        return True

    def skip_to_start(self) -> bool:
        if not self._session.units:
            return False
        self._session.unit_started_at = 0.0
        self._seek(0)
        return True

    def skip_to_end(self) -> bool:
        """Park past the last unit. Playback does not resume."""
        session = self._session
        if not session.units:
            return False
        self._hard_stop()
        session.index = len(session.units)
        session.unit_started_at = 0.0
        self._clear_highlight()
        logger.info("Skipped to end of narration")
        return True

    def announce(self, text: str) -> Optional[asyncio.Task[None]]:
        """Speak a short app-voice message outside the narration session."""
        if not text or not text.strip():
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, not announcing '{text}'")
            return None
        self._announcement = loop.create_task(self._announce(text))
        return self._announcement

    async def join(self) -> None:
        """Wait until the current playback loop (and any that replace it) exits."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _seek(self, target: int) -> None:
        self._hard_stop()
        self._session.index = target
        if self.autoplay:
            self.start(from_index=target)
        else:
            self._session.status = "paused"
            self._show_unit(target)

    def _elapsed(self) -> float:
        return self._clock() - self._session.unit_started_at

    def _invalidate(self) -> None:
        self._session.id += 1
        try:
            self._synthesizer.stop()
        except Exception as exc:
            logger.warning(f"Failed to stop audio: {exc}")

    def _hard_stop(self) -> None:
        self._invalidate()
        self._session.status = "idle"

    async def _run(self, session_id: int) -> None:
        session = self._session

        # Let a confirmation message finish before narration starts
        announcement = self._announcement
        if announcement is not None and not announcement.done():
            await asyncio.wait({announcement})
            if not self.is_current(session_id):
                return

        index = session.index
        while self.is_current(session_id) and index < len(session.units):
            session.index = index
            unit = session.units[index]
            session.unit_started_at = self._clock()
            self._show_unit(index)

            if not await self._speak(unit.text, unit.voice, session_id):
                logger.debug(f"Session {session_id} superseded at unit {index}")
                return
            index += 1

        if self.is_current(session_id) and session.status == "playing":
            session.status = "ended"
            session.index = len(session.units)
            self._clear_highlight()
            logger.info(f"Narration session {session_id} finished")

    async def _speak(self, text: str, voice: Voice, session_id: int) -> bool:
        """Voice one unit. Returns False once the session is no longer current."""
        if self._echo is not None:
            # Recorded before synthesis so interim recognition is screened too
            self._echo.record(text)
        spoken = self._prepare_text(text) if self._prepare_text else text

        try:
            audio: Any = await self._synthesizer.synthesize(spoken, voice)
        except Exception as exc:
            logger.error(f"Synthesis failed, skipping unit: {exc}")
            return self.is_current(session_id)
        if not self.is_current(session_id):
            return False

        try:
            await self._synthesizer.play(audio)
        except Exception as exc:
            logger.error(f"Playback failed, skipping unit: {exc}")
        return self.is_current(session_id)

    async def _announce(self, text: str) -> None:
        if self._echo is not None:
            self._echo.record(text)
        try:
            audio = await self._synthesizer.synthesize(text, "app")
            await self._synthesizer.play(audio)
        except Exception as exc:
            logger.warning(f"Announcement failed: {exc}")

    def _show_unit(self, index: int) -> None:
        if self._presenter is None:
            return
        unit = self._session.units[index]
        try:
            self._presenter.show_unit(index, unit.source_ref)
        except Exception as exc:
            logger.warning(f"Presenter failed to highlight unit {index}: {exc}")

    def _clear_highlight(self) -> None:
        if self._presenter is None:
            return
        try:
            self._presenter.clear_highlight()
        except Exception as exc:
            logger.warning(f"Presenter failed to clear highlight: {exc}")


__all__ = ["NarrationSession", "PlaybackSessionController", "SessionStatus"]
