"""
Narration engine.

Wires the segmenter, echo suppressor, command interpreter and playback
controller to the capability interfaces of the hosting player:

    content ──▶ TextSegmenter ──▶ PlaybackSessionController ──▶ SpeechSynthesizer
                                        │                            NarrationPresenter
    transcript ──▶ EchoSuppressor ──▶ CommandInterpreter ──┬──▶ navigation (local)
                                                           └──▶ HostApplication

Usage:
    configure_logging(get_settings())  # once, from narrator.logging_settings
    engine = NarrationEngine.from_settings(synthesizer, presenter, host)
    engine.on_content_changed(NarrationContent(status=status_html, main=main_html))
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Union

from narrator.config import get_settings
from narrator.schemas.commands import (
    HOST_ACTIONS,
    CommandOutcome,
    ForwardText,
    InputMode,
    LiteralText,
    NavigationAction,
    Rejected,
)
from narrator.schemas.narration import NarrationContent, NarrationSettings
from narrator.services.command_interpreter import CommandInterpreter
from narrator.services.echo_suppressor import EchoSuppressor
from narrator.services.playback import PlaybackSessionController
from narrator.services.pronunciation import PronunciationFixer
from narrator.services.speech import (
    HostApplication,
    NarrationPresenter,
    SpeechRecognizer,
    SpeechSynthesizer,
)
from narrator.services.text_segmenter import TextSegmenter

logger = logging.getLogger(__name__)

NO_STATUS_MESSAGE = "No status presently shown"


class NarrationEngine:
    """Narrates content and routes voice or typed input."""

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        presenter: Optional[NarrationPresenter] = None,
        host: Optional[HostApplication] = None,
        *,
        recognizer: Optional[SpeechRecognizer] = None,
        settings: Optional[NarrationSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or NarrationSettings()
        self.host = host
        self.recognizer = recognizer
        self.mode = InputMode()
        self._content: Optional[NarrationContent] = None

        self.echo = EchoSuppressor(
            retention_seconds=self.settings.echo_retention_seconds,
            max_records=self.settings.echo_max_records,
            similarity_threshold=self.settings.echo_similarity_threshold,
            word_overlap_threshold=self.settings.echo_word_overlap_threshold,
            clock=clock,
        )
        self.pronunciation = PronunciationFixer(self.settings.pronunciation_map)
        self.segmenter = TextSegmenter(include_status=self.settings.include_status)
        self.playback = PlaybackSessionController(
            synthesizer,
            presenter,
            echo=self.echo,
            prepare_text=self.pronunciation.fix,
            autoplay=self.settings.autoplay,
            smart_back_seconds=self.settings.smart_back_seconds,
            clock=clock,
        )
        self.interpreter = CommandInterpreter(on_confirmation=self._announce)

        self._handlers: dict[str, Callable[[NavigationAction], None]] = {
            "restart": self._restart,
            "back": self._back,
            "skip": self._skip,
            "skip_to_end": self._skip_to_end,
            "pause": self._pause,
            "play": self._play,
            "mute": self._mute,
            "unmute": self._unmute,
            "status": self._status,
        }

    @classmethod
    def from_settings(
        cls,
        synthesizer: SpeechSynthesizer,
        presenter: Optional[NarrationPresenter] = None,
        host: Optional[HostApplication] = None,
        **kwargs,
    ) -> "NarrationEngine":
        """Build an engine tuned from environment configuration."""
        settings = NarrationSettings.from_settings(get_settings())
        return cls(synthesizer, presenter, host, settings=settings, **kwargs)

    @property
    def narrating(self) -> bool:
        return self.playback.is_playing

    @property
    def content(self) -> Optional[NarrationContent]:
        return self._content

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def on_content_changed(self, content: Union[NarrationContent, str, None]) -> int:
        """Replace the narration with new content. Returns the number of units."""
        if isinstance(content, str):
            content = NarrationContent(main=content)
        self._content = content

        units = self.segmenter.segment(content)
        self.playback.load(units)
        if units and self.playback.autoplay:
            self.playback.start()
        return len(units)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def screen_interim(self, transcript: str) -> bool:
        """True when an interim transcript is the narrator hearing itself."""
        if not self.narrating:
            return False
        return self.echo.is_echo(transcript)

    async def handle_transcript(
        self,
        transcript: str,
        *,
        confidence: Optional[float] = None,
        final: bool = True,
    ) -> Optional[CommandOutcome]:
        """
        Route a recognized transcript.

        Interim results are only screened for echo and return None. Final
        results are screened, classified and, above the confidence
        threshold, acted on.
        """
        if not final:
            self.screen_interim(transcript)
            return None

        if self.echo.is_echo(transcript):
            return Rejected("echo")

        self.mode.narrating = self.narrating
        held = self.mode.paused_for_sound_input
        processed = self.mode.command_processed
        outcome = self.interpreter.interpret(transcript, self.mode, confidence)

        if confidence is not None and confidence < self.settings.confidence_threshold:
            # Not acted on, so the pause for voice input still stands
            self.mode.paused_for_sound_input = held
            self.mode.command_processed = processed
            logger.info(
                f"Low confidence ({confidence:.2f}), not acting on: '{transcript}'"
            )
            return Rejected("low confidence")

        await self._dispatch(outcome)
        return outcome

    async def handle_typed(self, text: str) -> CommandOutcome:
        """Route keyboard input. Typed text is never echo-screened or gated."""
        self.mode.narrating = self.narrating
        outcome = self.interpreter.interpret(text, self.mode)
        await self._dispatch(outcome)
        return outcome

    def hold_for_sound_input(self) -> None:
        """Pause narration because the listener started speaking."""
        if not self.narrating or self.mode.muted or self.mode.paused_for_sound_input:
            return
        self.mode.paused_for_sound_input = True
        self.mode.command_processed = False
        self.playback.pause()
        logger.info("Paused narration for voice input")

    def release_sound_input(self) -> None:
        """Silence again: resume narration unless a command took over."""
        if not self.mode.paused_for_sound_input:
            return
        self.mode.paused_for_sound_input = False
        if self.mode.command_processed:
            self.mode.command_processed = False
            return
        if self.playback.autoplay:
            self.playback.resume()
            logger.info("Resumed narration after silence")

    def start_listening(self) -> None:
        if self.recognizer is not None:
            self.recognizer.start()

    def stop_listening(self) -> None:
        if self.recognizer is not None:
            self.recognizer.stop()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def execute(self, action: NavigationAction) -> None:
        """Perform a navigation action locally, or hand it to the host."""
        if action.kind in HOST_ACTIONS:
            if self.host is None:
                logger.warning(f"No host application to handle '{action.kind}'")
                return
            self.playback.stop()
            self.host.handle_action(action)
            return

        handler = self._handlers.get(action.kind)
        if handler is None:
            logger.warning(f"Unhandled navigation action: {action.kind}")
            return
        handler(action)

    def stop(self) -> None:
        """Hard stop. Forget recent speech so the next command is not mistaken for echo."""
        self.playback.stop()
        self.echo.clear()

    async def _dispatch(self, outcome: CommandOutcome) -> None:
        if isinstance(outcome, NavigationAction):
            self.execute(outcome)
        elif isinstance(outcome, (ForwardText, LiteralText)):
            # Game input counts as a processed command for the voice-input pause
            self.mode.command_processed = True
            self.mode.paused_for_sound_input = False
            await self._submit(outcome)

    async def _submit(self, outcome: Union[ForwardText, LiteralText]) -> None:
        if self.host is None:
            logger.debug("No host application, dropping input")
            return
        literal = isinstance(outcome, LiteralText)
        logger.info(f"Sending {'literal' if literal else 'command'}: '{outcome.text}'")
        await self.host.submit_command(outcome.text, literal=literal)

    def _restart(self, action: NavigationAction) -> None:
        self.playback.autoplay = True
        self.playback.skip_to_start()

    def _back(self, action: NavigationAction) -> None:
        self.playback.autoplay = True
        self.playback.skip(-action.count)

    def _skip(self, action: NavigationAction) -> None:
        self.playback.autoplay = True
        self.playback.skip(action.count)

    def _skip_to_end(self, action: NavigationAction) -> None:
        self.playback.skip_to_end()
        self.echo.clear()

    def _pause(self, action: NavigationAction) -> None:
        self.playback.autoplay = False
        self.playback.pause()
        self.echo.clear()

    def _play(self, action: NavigationAction) -> None:
        self.playback.autoplay = True
        if self.playback.is_playing:
            return
        if self.playback.session.at_end:
            self.playback.skip_to_start()
        else:
            self.playback.resume()

    def _mute(self, action: NavigationAction) -> None:
        self.mode.muted = True
        logger.info("Voice input muted")

    def _unmute(self, action: NavigationAction) -> None:
        self.mode.muted = False
        logger.info("Voice input unmuted")

    def _status(self, action: NavigationAction) -> None:
        status = ""
        if self._content is not None and self._content.status.strip():
            status = self.segmenter.plain_text(self._content.status)
        self._announce(status or NO_STATUS_MESSAGE)

    def _announce(self, message: str) -> None:
        self.playback.announce(message)


__all__ = ["NarrationEngine", "NO_STATUS_MESSAGE"]
