"""
Narration Services Package.

This package contains the building blocks of the narration engine:

- text_segmenter: Splits formatted game output into narration units
- pronunciation: Rewrites mispronounced words right before synthesis
- playback: Cancellable sequential playback of narration units
- echo_suppressor: Recognizes the narrator's own speech coming back as input
- command_interpreter: Classifies transcripts as navigation or game input
- speech: Protocols implemented by synthesis, recognition and presentation

Architecture Overview:

    ┌──────────────┐     ┌───────────────┐     ┌────────────────────┐     ┌─────────────┐
    │ Game output  │────▶│ TextSegmenter │────▶│ PlaybackController │────▶│ Synthesizer │
    └──────────────┘     └───────────────┘     └────────────────────┘     └─────────────┘
                                                         │ record()
                                                         ▼
    ┌──────────────┐     ┌───────────────┐     ┌────────────────────┐
    │  Recognizer  │────▶│EchoSuppressor │────▶│ CommandInterpreter │────▶ navigation / game input
    └──────────────┘     └───────────────┘     └────────────────────┘

Playback is organized around a session id:
1. Every start, pause, seek or new content bumps the id
2. The playback loop re-checks its captured id after each await
3. A superseded loop exits without touching shared state
"""

from .command_interpreter import CommandInterpreter
from .echo_suppressor import EchoSuppressor
from .playback import PlaybackSessionController
from .pronunciation import PronunciationFixer
from .text_segmenter import TextSegmenter

__all__ = [
    "CommandInterpreter",
    "EchoSuppressor",
    "PlaybackSessionController",
    "PronunciationFixer",
    "TextSegmenter",
]
