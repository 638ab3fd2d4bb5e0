"""Tests for splitting game output into narration units."""

from unittest.mock import MagicMock

import pytest

from narrator.errors import InvalidContentError
from narrator.schemas.narration import NarrationContent, NarrationUnit, SourceRef
from narrator.services.text_segmenter import TextSegmenter, flatten_markup


def texts(units: list[NarrationUnit]) -> list[str]:
    return [unit.text for unit in units]


def test_empty_content_has_no_units() -> None:
    segmenter = TextSegmenter()

    assert segmenter.segment("") == []
    assert segmenter.segment("   ") == []
    assert segmenter.segment(None) == []
    assert segmenter.segment(NarrationContent()) == []
    assert segmenter.segment(NarrationContent(status="  ", upper="\n", main="\t")) == []


def test_single_sentence() -> None:
    units = TextSegmenter().segment("Hello world.")

    assert units == [
        NarrationUnit(text="Hello world.", source_ref=SourceRef("main", 0, 12))
    ]


def test_text_without_terminal_punctuation_is_one_unit() -> None:
    units = TextSegmenter().segment("an endless   corridor")

    assert texts(units) == ["an endless corridor"]


def test_spelled_letters_collapse_and_notify() -> None:
    on_spelled = MagicMock()
    segmenter = TextSegmenter(on_spelled=on_spelled)

    units = segmenter.segment("A B C look around. Then what?")

    assert texts(units) == ["ABC look around.", "Then what?"]
    on_spelled.assert_called_once_with("ABC")


def test_spelled_callback_failure_does_not_break_segmentation() -> None:
    segmenter = TextSegmenter(on_spelled=MagicMock(side_effect=RuntimeError("boom")))

    assert texts(segmenter.segment("X Y Z")) == ["XYZ"]


def test_initials_are_not_sentence_boundaries() -> None:
    units = TextSegmenter().segment("J. R. R. Tolkien wrote it. Then he rested.")

    assert texts(units) == ["JRR Tolkien wrote it.", "Then he rested."]


def test_single_capital_initial_is_not_a_boundary() -> None:
    units = TextSegmenter().segment("So am I. Then go. Ask H. Smith.")

    assert texts(units) == ["So am I Then go.", "Ask H Smith."]


def test_heading_before_line_break_is_its_own_unit() -> None:
    markup = "CHAPTER ONE<br>You wake up in a cold room."

    units = TextSegmenter().segment(markup)

    assert texts(units) == ["Chapter ONE.", "You wake up in a cold room."]
    assert units[0].source_ref == SourceRef("main", 0, 11)


def test_short_capitals_before_line_break_stay_inline() -> None:
    units = TextSegmenter().segment("OK, GO<br>north now.")

    assert texts(units) == ["OK, GO north now."]


def test_asterisk_title_is_its_own_unit() -> None:
    segmenter = TextSegmenter()

    units = texts(segmenter.segment("You have died. *** You lose *** Try again."))

    assert units == ["You have died.", "*** You lose ***", "Try again."]
    assert texts(segmenter.segment(" ".join(units))) == units


def test_shouted_words_are_recased() -> None:
    units = TextSegmenter().segment("You see a LANTERN and an OX here.")

    assert texts(units) == ["You see a Lantern and an OX here."]


def test_ellipsis_ends_a_sentence() -> None:
    units = TextSegmenter().segment("Wait... what?")

    assert texts(units) == ["Wait…", "what?"]


def test_question_and_exclamation_split() -> None:
    units = TextSegmenter().segment('Who goes there? "Me!" Fine.')

    assert texts(units) == ["Who goes there?", '"Me!"', "Fine."]


def test_paragraphs_split_and_map_to_markup() -> None:
    markup = "<p>First line</p><p>Second line</p>"

    units = TextSegmenter().segment(markup)

    assert texts(units) == ["First line.", "Second line"]
    first = units[0].source_ref
    assert first == SourceRef("main", 3, 13)
    assert markup[first.start:first.end] == "First line"


def test_line_break_is_a_space() -> None:
    units = TextSegmenter().segment("Line one<br>line two.")

    assert texts(units) == ["Line one line two."]


def test_blank_line_in_plain_text_is_a_paragraph_break() -> None:
    units = TextSegmenter().segment("West of House\n\nYou are standing in a field.")

    assert texts(units) == ["West of House.", "You are standing in a field."]


def test_entities_are_decoded_at_their_offset() -> None:
    markup = "Fish &amp; chips."

    units = TextSegmenter().segment(markup)

    assert texts(units) == ["Fish & chips."]
    assert units[0].source_ref == SourceRef("main", 0, len(markup))


def test_input_echo_and_scripts_are_not_narrated() -> None:
    markup = (
        '<span class="glk-input">look</span>'
        '<span data-voice="app">Listening.</span>'
        "<script>var x = 1;</script>"
        "<p>You see nothing special.</p>"
    )

    units = TextSegmenter().segment(markup)

    assert texts(units) == ["You see nothing special."]
    assert markup[units[0].source_ref.start:units[0].source_ref.end] == (
        "You see nothing special."
    )


def test_system_message_span_uses_system_voice() -> None:
    markup = '<p>Taken.</p><div class="system-message">Game saved.</div>'

    units = TextSegmenter().segment(markup)

    assert texts(units) == ["Taken.", "System: Game saved."]
    assert [unit.voice for unit in units] == ["narrator", "system"]


def test_system_content_labels_only_first_unit() -> None:
    content = NarrationContent(main="Restore failed. Try again.", system=True)

    units = TextSegmenter().segment(content)

    assert texts(units) == ["System: Restore failed.", "Try again."]
    assert all(unit.voice == "system" for unit in units)


def test_status_region_comes_first_with_label() -> None:
    content = NarrationContent(
        status="West of House",
        main="You are standing in an open field.",
    )

    units = TextSegmenter().segment(content)

    assert texts(units) == [
        "Status: West of House",
        "You are standing in an open field.",
    ]
    assert units[0].source_ref == SourceRef("status", 0, 13)
    assert units[1].source_ref.region == "main"


def test_status_region_can_be_excluded() -> None:
    content = NarrationContent(status="Score: 0", upper="A quote.", main="Go north.")

    units = TextSegmenter(include_status=False).segment(content)

    assert texts(units) == ["A quote.", "Go north."]
    assert [unit.source_ref.region for unit in units] == ["upper", "main"]


def test_segment_is_idempotent_on_joined_output() -> None:
    segmenter = TextSegmenter()
    source = (
        "You are in a MAZE of twisty passages... J. R. R. Tolkien wrote it."
        "\n\nWhere now"
    )

    first = texts(segmenter.segment(source))
    second = texts(segmenter.segment(" ".join(first)))

    assert first == [
        "You are in a Maze of twisty passages…",
        "JRR Tolkien wrote it.",
        "Where now",
    ]
    assert second == first


def test_unknown_region_is_rejected() -> None:
    with pytest.raises(InvalidContentError):
        TextSegmenter().segment_markup("text", region="footer")  # type: ignore[arg-type]


def test_plain_text_flattens_paragraphs() -> None:
    segmenter = TextSegmenter()

    assert segmenter.plain_text("<b>West of House</b><br>Score: 0") == (
        "West of House Score: 0"
    )


def test_flatten_markup_offsets_point_into_source() -> None:
    markup = "<i>Hi</i> there"

    text, offsets = flatten_markup(markup)

    assert text == "Hi there"
    assert [markup[offset] for offset in offsets] == list("Hi there")
