import asyncio
import pathlib
import sys
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from narrator.errors import SynthesisError  # noqa: E402


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSynthesizer:
    """In-memory SpeechSynthesizer.

    With ``auto_finish`` off, ``play`` blocks until ``finish()`` or ``stop()``
    is called, which lets tests hold playback on a given unit.
    """

    def __init__(self, auto_finish: bool = True):
        self.auto_finish = auto_finish
        self.synthesized: list[tuple[str, str]] = []
        self.started: list[Any] = []
        self.played: list[Any] = []
        self.stop_calls = 0
        self.fail_texts: set[str] = set()
        self._active: list[asyncio.Event] = []

    async def synthesize(self, text: str, voice: str = "narrator") -> Any:
        self.synthesized.append((text, voice))
        await asyncio.sleep(0)
        if text in self.fail_texts:
            raise SynthesisError(f"cannot synthesize {text!r}")
        return f"audio:{text}"

    async def play(self, audio: Any) -> None:
        done = asyncio.Event()
        self._active.append(done)
        self.started.append(audio)
        try:
            if self.auto_finish:
                await asyncio.sleep(0)
            else:
                await done.wait()
        finally:
            self._active.remove(done)
        self.played.append(audio)

    def finish(self) -> None:
        for event in list(self._active):
            event.set()

    def stop(self) -> None:
        self.stop_calls += 1
        self.finish()

    @property
    def spoken_texts(self) -> list[str]:
        return [text for text, _voice in self.synthesized]


async def wait_until(predicate: Callable[[], bool], steps: int = 200) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    for _ in range(steps):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def held_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer(auto_finish=False)


@pytest.fixture
def presenter() -> MagicMock:
    return MagicMock()


@pytest.fixture
def settle() -> Callable[..., Any]:
    return wait_until


@pytest.fixture
def host() -> MagicMock:
    host = MagicMock()
    host.submit_command = AsyncMock()
    return host
