"""
Text Segmenter for Narration.

This module turns formatted game output into narration units: sentence-sized
pieces of text that are spoken one after another and highlighted as they are
spoken.

Architecture:
    markup → _MarkupFlattener → _MappedText (text + source offset per char)
           → normalization passes → sentence split → NarrationUnit list

Every character of the flattened text remembers the offset of the source
character it came from. The normalization passes rewrite the text through
``_MappedText.sub`` which carries those offsets along, so each produced unit
can be traced back to a span of the original markup.

Usage:
    segmenter = TextSegmenter(on_spelled=print)
    units = segmenter.segment(NarrationContent(status="West of House", main=html))
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field, replace
from html.parser import HTMLParser
from typing import Callable, Iterator, Optional, Union

from narrator.errors import InvalidContentError
from narrator.schemas.narration import (
    REGION_ORDER,
    NarrationContent,
    NarrationUnit,
    Region,
    SourceRef,
)

logger = logging.getLogger(__name__)

# Strong separator between paragraphs in flattened text
PARAGRAPH_BREAK = "\n"
# Single line break (<br>, closing div); a space once titles are marked
LINE_BREAK = "\r"

STATUS_LABEL = "Status: "
SYSTEM_LABEL = "System: "

_VOID_TAGS = frozenset(
    {"br", "img", "hr", "input", "meta", "link", "wbr", "area", "base", "col", "embed", "source", "track"}
)
_LINE_TAGS = frozenset({"div", "tr", "dt", "dd"})
_PARAGRAPH_TAGS = frozenset(
    {"p", "li", "blockquote", "pre", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "table"}
)
_SKIP_CONTENT_TAGS = frozenset({"script", "style"})

_BLANK_LINE = re.compile(r"\n[ \t\r\f\v]*\n\s*")

# Normalization patterns, applied in this order
_ELLIPSIS = re.compile(r"\.{3,}")
_ASTERISK_TITLE = re.compile(r"\*+[^*\n\r]+\*+")
_CAPS_TITLE = re.compile(r"(?<![^\n\r])[A-Z][A-Z \t,.'\"-]{7,}?(?=\r)")
_LINE_BREAK = re.compile(r"\r")
_SPELLED_WORD = re.compile(r"(?<!\w)[A-Z](?: +[A-Z]){2,}(?!\w)")
_INITIALS = re.compile(r"(?<![\w.])[A-Z]\.(?: ?[A-Z]\.)*(?= |\n|$)")
_INLINE_SPACE = re.compile(r"[^\S\n]+")
_SPACE_AROUND_BREAK = re.compile(r" ?\n\s*")
_UNPUNCTUATED_BREAK = re.compile(r"(?<=[^.!?…*\"')\]”’])([\"')\]”’]*)\n")
_MIN_TITLE_LETTERS = 5
_SHOUTED_WORD = re.compile(r"\b[A-Z]{4,}\b")

# Sentence-terminal punctuation, optionally followed by closing quotes/brackets
_SENTENCE_END = re.compile(r"[.!?…]+[\"')\]”’]*(?=\s|$)|\n")


class _MappedText:
    """Plain text with the source offset of every character."""

    __slots__ = ("text", "offsets")

    def __init__(self, text: str, offsets: list[Optional[int]]):
        if len(text) != len(offsets):
            raise ValueError("text and offsets must have the same length")
        self.text = text
        self.offsets = offsets

    def sub(
        self,
        pattern: re.Pattern[str],
        repl: Union[str, Callable[[re.Match[str]], str]],
    ) -> "_MappedText":
        """Regex substitution that keeps the offset table aligned."""

        pieces: list[str] = []
        offsets: list[Optional[int]] = []
        last = 0
        for match in pattern.finditer(self.text):
            start, end = match.span()
            pieces.append(self.text[last:start])
            offsets.extend(self.offsets[last:start])
            replacement = repl(match) if callable(repl) else match.expand(repl)
            pieces.append(replacement)
            offsets.extend(self._align(replacement, start, end))
            last = end
        if last == 0 and not pieces:
            return self
        pieces.append(self.text[last:])
        offsets.extend(self.offsets[last:])
        return _MappedText("".join(pieces), offsets)

    def _align(self, replacement: str, start: int, end: int) -> list[Optional[int]]:
        # Replacement characters map to the next equal character of the match
        source = self.text[start:end].lower()
        aligned: list[Optional[int]] = []
        cursor = 0
        for char in replacement.lower():
            found = source.find(char, cursor)
            if found == -1:
                aligned.append(None)
                continue
            aligned.append(self.offsets[start + found])
            cursor = found + 1
        return aligned

    def strip(self) -> "_MappedText":
        stripped = self.text.strip()
        if not stripped:
            return _MappedText("", [])
        start = len(self.text) - len(self.text.lstrip())
        end = start + len(stripped)
        return _MappedText(stripped, self.offsets[start:end])


@dataclass
class _OpenTag:
    tag: str
    skip: bool
    system: bool


@dataclass
class _Flattened:
    text: _MappedText
    system_offsets: set[int] = field(default_factory=set)


class _MarkupFlattener(HTMLParser):
    """Flatten markup to plain text, recording where each character came from."""

    def __init__(self, source: str):
        super().__init__(convert_charrefs=False)
        self._line_starts = [0] + [match.end() for match in re.finditer("\n", source)]
        self._stack: list[_OpenTag] = []
        self._pending_breaks = 0
        self._break_offset: Optional[int] = None
        self._chars: list[str] = []
        self._offsets: list[Optional[int]] = []
        self._system_offsets: set[int] = set()

    def flatten(self, source: str) -> _Flattened:
        self.feed(source)
        self.close()
        return _Flattened(
            text=_MappedText("".join(self._chars), self._offsets),
            system_offsets=self._system_offsets,
        )

    def _position(self) -> int:
        line, column = self.getpos()
        return self._line_starts[line - 1] + column

    @property
    def _skipping(self) -> bool:
        return bool(self._stack) and self._stack[-1].skip

    @property
    def _in_system(self) -> bool:
        return bool(self._stack) and self._stack[-1].system

    def _line_break(self, weight: int, offset: int) -> None:
        self._pending_breaks = min(2, self._pending_breaks + weight)
        if self._break_offset is None:
            self._break_offset = offset

    def _flush_breaks(self) -> None:
        if self._pending_breaks and self._chars:
            separator = PARAGRAPH_BREAK if self._pending_breaks >= 2 else LINE_BREAK
            self._chars.append(separator)
            self._offsets.append(self._break_offset)
        self._pending_breaks = 0
        self._break_offset = None

    def _emit(self, text: str, start: int, *, same_offset: bool = False) -> None:
        if not text:
            return
        if not text.isspace():
            self._flush_breaks()
        system = self._in_system
        for index, char in enumerate(text):
            offset = start if same_offset else start + index
            self._chars.append(" " if char.isspace() else char)
            self._offsets.append(offset)
            if system:
                self._system_offsets.add(offset)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, Optional[str]]]) -> None:
        if tag == "br":
            self._line_break(1, self._position())
            return
        if tag in _VOID_TAGS:
            return

        attributes = dict(attrs)
        classes = (attributes.get("class") or "").split()
        voice = (attributes.get("data-voice") or "").lower()
        parent = self._stack[-1] if self._stack else None

        skip = tag in _SKIP_CONTENT_TAGS or voice == "app" or "glk-input" in classes
        system = voice == "system" or "system-message" in classes
        self._stack.append(
            _OpenTag(
                tag=tag,
                skip=skip or (parent.skip if parent else False),
                system=system or (parent.system if parent else False),
            )
        )
        if tag in _PARAGRAPH_TAGS:
            self._line_break(2, self._position())

    def handle_endtag(self, tag: str) -> None:
        if tag in _VOID_TAGS:
            return
        for depth in range(len(self._stack) - 1, -1, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                break
        if tag in _PARAGRAPH_TAGS:
            self._line_break(2, self._position())
        elif tag in _LINE_TAGS:
            self._line_break(1, self._position())

    def handle_data(self, data: str) -> None:
        if self._skipping:
            return
        base = self._position()
        cursor = 0
        for match in _BLANK_LINE.finditer(data):
            self._emit(data[cursor:match.start()], base + cursor)
            self._line_break(2, base + match.start())
            cursor = match.end()
        self._emit(data[cursor:], base + cursor)

    def handle_entityref(self, name: str) -> None:
        if self._skipping:
            return
        raw = f"&{name};"
        decoded = html.unescape(raw)
        if decoded == raw:
            # Unknown entity or a bare ampersand ("AT&T")
            decoded = f"&{name}"
        self._emit(decoded, self._position(), same_offset=True)

    def handle_charref(self, name: str) -> None:
        if self._skipping:
            return
        raw = f"&#{name};"
        self._emit(html.unescape(raw), self._position(), same_offset=True)


def flatten_markup(markup: str) -> tuple[str, list[Optional[int]]]:
    """Return plain text for ``markup`` and the source offset of every character."""

    flattened = _MarkupFlattener(markup).flatten(markup)
    return flattened.text.text.replace(LINE_BREAK, " "), flattened.text.offsets


def _sentence_spans(text: str) -> Iterator[tuple[int, int]]:
    """Yield (start, end) of each non-empty sentence, whitespace trimmed."""

    start = 0
    bounds: list[tuple[int, int]] = []
    for match in _SENTENCE_END.finditer(text):
        end = match.start() if match.group() == PARAGRAPH_BREAK else match.end()
        bounds.append((start, end))
        start = match.end()
    bounds.append((start, len(text)))

    for begin, finish in bounds:
        chunk = text[begin:finish]
        if not chunk.strip():
            continue
        lead = len(chunk) - len(chunk.lstrip())
        trail = len(chunk) - len(chunk.rstrip())
        yield begin + lead, finish - trail


class TextSegmenter:
    """
    Splits formatted content into ordered narration units.

    Attributes:
        include_status: Whether the status region is narrated
        on_spelled: Called with each letter-spaced word that was collapsed
    """

    def __init__(
        self,
        *,
        include_status: bool = True,
        on_spelled: Optional[Callable[[str], None]] = None,
    ):
        self.include_status = include_status
        self.on_spelled = on_spelled

    def segment(
        self, content: Union[NarrationContent, str, None]
    ) -> list[NarrationUnit]:
        """
        Produce narration units for ``content``.

        A plain string is treated as the main region. Empty or
        whitespace-only content yields no units.
        """
        if content is None:
            return []
        if isinstance(content, str):
            content = NarrationContent(main=content)
        if content.is_blank():
            return []

        units: list[NarrationUnit] = []
        for region in REGION_ORDER:
            if region == "status" and not self.include_status:
                continue
            markup = content.region(region)
            if not markup or not markup.strip():
                continue
            region_units = self.segment_markup(
                markup,
                region=region,
                system=content.system and region == "main",
            )
            if region == "status" and region_units:
                region_units[0] = _with_label(region_units[0], STATUS_LABEL)
            units.extend(region_units)

        for position, unit in enumerate(units):
            if unit.voice == "system":
                units[position] = _with_label(unit, SYSTEM_LABEL)
                break

        logger.debug(f"Segmented content into {len(units)} unit(s)")
        return units

    def segment_markup(
        self,
        markup: str,
        *,
        region: Region = "main",
        system: bool = False,
    ) -> list[NarrationUnit]:
        """Segment a single region's markup. Labels are not applied."""

        if region not in REGION_ORDER:
            raise InvalidContentError(f"Unknown content region: {region!r}")

        flattened = _MarkupFlattener(markup).flatten(markup)
        normalized = self._normalize(flattened.text)
        text = normalized.text

        units: list[NarrationUnit] = []
        for start, end in _sentence_spans(text):
            source_ref = _resolve_source_ref(region, normalized.offsets[start:end])
            if source_ref is None:
                logger.debug(f"No source position for unit: '{text[start:end][:40]}'")
            is_system = system or (
                source_ref is not None and source_ref.start in flattened.system_offsets
            )
            units.append(
                NarrationUnit(
                    text=text[start:end],
                    source_ref=source_ref,
                    voice="system" if is_system else "narrator",
                )
            )
        return units

    def plain_text(self, markup: str) -> str:
        """Flattened and normalized text of ``markup``, as it would be spoken."""

        flattened = _MarkupFlattener(markup).flatten(markup)
        return self._normalize(flattened.text).text.replace(PARAGRAPH_BREAK, " ")

    def _normalize(self, text: _MappedText) -> _MappedText:
        text = text.sub(_ELLIPSIS, "…")
        text = text.sub(_ASTERISK_TITLE, _as_paragraph)
        text = text.sub(_CAPS_TITLE, _mark_caps_title)
        text = text.sub(_LINE_BREAK, " ")
        text = text.sub(_SPELLED_WORD, self._collapse_spelled)
        text = text.sub(_INITIALS, _collapse_initials)
        text = text.sub(_INLINE_SPACE, " ")
        text = text.sub(_SPACE_AROUND_BREAK, PARAGRAPH_BREAK)
        # A paragraph that ends without punctuation still ends a sentence
        text = text.sub(_UNPUNCTUATED_BREAK, lambda match: match.group(1) + "." + PARAGRAPH_BREAK)
        text = text.sub(_SHOUTED_WORD, lambda match: match.group().capitalize())
        return text.strip()

    def _collapse_spelled(self, match: re.Match[str]) -> str:
        word = match.group().replace(" ", "")
        logger.info(f"Collapsed spelled word: {word}")
        if self.on_spelled is not None:
            try:
                self.on_spelled(word)
            except Exception as exc:
                logger.warning(f"Spelled word callback failed: {exc}", exc_info=True)
        return word


def _collapse_initials(match: re.Match[str]) -> str:
    return match.group().replace(".", "").replace(" ", "")


def _as_paragraph(match: re.Match[str]) -> str:
    return PARAGRAPH_BREAK + match.group() + PARAGRAPH_BREAK


def _mark_caps_title(match: re.Match[str]) -> str:
    # "CHAPTER ONE<br>" style headings; short runs like "OK, GO" stay inline
    letters = [char for char in match.group() if char.isalpha()]
    if len(letters) < _MIN_TITLE_LETTERS:
        return match.group()
    return _as_paragraph(match)


def _resolve_source_ref(
    region: Region, offsets: list[Optional[int]]
) -> Optional[SourceRef]:
    known = [offset for offset in offsets if offset is not None]
    if not known:
        return None
    return SourceRef(region=region, start=known[0], end=known[-1] + 1)


def _with_label(unit: NarrationUnit, label: str) -> NarrationUnit:
    if not unit.text.strip():
        return unit
    return replace(unit, text=label + unit.text)


__all__ = ["PARAGRAPH_BREAK", "TextSegmenter", "flatten_markup"]
