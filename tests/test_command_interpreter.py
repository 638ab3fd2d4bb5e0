"""Tests for classifying transcripts into navigation or game input."""

from unittest.mock import MagicMock

import pytest

from narrator.schemas.commands import (
    ForwardText,
    InputMode,
    LiteralText,
    NavigationAction,
    Rejected,
)
from narrator.services.command_interpreter import (
    CommandInterpreter,
    collapse_spelled_letters,
    parse_count,
)


@pytest.fixture
def interpreter() -> CommandInterpreter:
    return CommandInterpreter()


@pytest.mark.parametrize(
    ("transcript", "expected"),
    [
        ("skip", NavigationAction("skip")),
        ("Skip.", NavigationAction("skip")),
        ("  RESTART ", NavigationAction("restart")),
        ("back", NavigationAction("back")),
        ("go back three", NavigationAction("back", (3,))),
        ("back 2", NavigationAction("back", (2,))),
        ("skip 4", NavigationAction("skip", (4,))),
        ("skip forward two", NavigationAction("skip", (2,))),
        ("forward 5", NavigationAction("skip", (5,))),
        ("stop", NavigationAction("pause")),
        ("pause", NavigationAction("pause")),
        ("resume", NavigationAction("play")),
        ("skip to the end", NavigationAction("skip_to_end")),
        ("end", NavigationAction("skip_to_end")),
        ("mute", NavigationAction("mute")),
        ("status", NavigationAction("status")),
        ("quick save", NavigationAction("quick_save")),
        ("quickload", NavigationAction("quick_load")),
        ("restore game", NavigationAction("restore_latest")),
        ("load slot 3", NavigationAction("restore_slot", (3,))),
        ("Restore slot 12", NavigationAction("restore_slot", (12,))),
        ("get hint", NavigationAction("hint")),
    ],
)
def test_navigation_phrases(
    interpreter: CommandInterpreter, transcript: str, expected: NavigationAction
) -> None:
    assert interpreter.interpret(transcript) == expected


def test_free_text_is_forwarded(interpreter: CommandInterpreter) -> None:
    assert interpreter.interpret("xyzzy") == ForwardText("xyzzy")
    assert interpreter.interpret("open the mailbox") == ForwardText("open the mailbox")


def test_print_sends_literal_text(interpreter: CommandInterpreter) -> None:
    assert interpreter.interpret("Print Hello There") == LiteralText("Hello There")


@pytest.mark.parametrize("transcript", ["enter", "Press Enter", "hit enter."])
def test_enter_submits_empty_command(
    interpreter: CommandInterpreter, transcript: str
) -> None:
    assert interpreter.interpret(transcript) == ForwardText("")


def test_empty_transcript_is_rejected(interpreter: CommandInterpreter) -> None:
    assert interpreter.interpret("   ") == Rejected("empty")


def test_game_input_rejected_while_narrating(interpreter: CommandInterpreter) -> None:
    mode = InputMode(narrating=True)

    assert isinstance(interpreter.interpret("look", mode), Rejected)
    assert interpreter.interpret("skip", mode) == NavigationAction("skip")


def test_game_input_accepted_when_paused_for_sound_input(
    interpreter: CommandInterpreter,
) -> None:
    mode = InputMode(narrating=True, paused_for_sound_input=True)

    assert interpreter.interpret("look", mode) == ForwardText("look")


def test_navigation_marks_transcript_processed(interpreter: CommandInterpreter) -> None:
    mode = InputMode(narrating=True, paused_for_sound_input=True)

    interpreter.interpret("back", mode)

    assert mode.command_processed is True
    assert mode.paused_for_sound_input is False


def test_only_unmute_is_heard_while_muted(interpreter: CommandInterpreter) -> None:
    mode = InputMode(muted=True)

    assert interpreter.interpret("UNMUTE", mode) == NavigationAction("unmute")
    assert interpreter.interpret("on mute", mode) == NavigationAction("unmute")
    assert interpreter.interpret("skip", mode) == Rejected("muted")
    assert interpreter.interpret("look", mode) == Rejected("muted")


def test_low_confidence_is_still_classified(interpreter: CommandInterpreter) -> None:
    assert interpreter.interpret("skip", confidence=0.1) == NavigationAction("skip")


def test_spelled_letters_are_joined_and_confirmed() -> None:
    on_confirmation = MagicMock()
    interpreter = CommandInterpreter(on_confirmation=on_confirmation)

    outcome = interpreter.interpret("read x y z")

    assert outcome == ForwardText("read XYZ")
    on_confirmation.assert_called_once_with("Spelled: XYZ")


def test_collapse_spelled_letters_keeps_short_runs() -> None:
    assert collapse_spelled_letters("go n e") == ("go n e", [])
    assert collapse_spelled_letters("a b c then d e f") == ("ABC then DEF", ["ABC", "DEF"])


def test_parse_count() -> None:
    assert parse_count("seven") == 7
    assert parse_count("12") == 12
