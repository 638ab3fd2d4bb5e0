"""Narration content, unit and tuning schemas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from narrator.config import Settings


Voice = Literal["narrator", "app", "system"]
Region = Literal["status", "upper", "main"]

# Regions are narrated in this order
REGION_ORDER: tuple[Region, ...] = ("status", "upper", "main")


@dataclass(frozen=True, slots=True)
class SourceRef:
    """Character span in the raw markup of one content region.

    ``start`` is the offset of the first source character of the unit and
    ``end`` is one past the last one, so ``markup[start:end]`` covers the
    highlighted region (tags included).
    """

    region: Region
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class NarrationUnit:
    """One speakable chunk of text, typically a sentence."""

    text: str
    source_ref: Optional[SourceRef] = None
    voice: Voice = "narrator"


class NarrationContent(BaseModel):
    """Formatted output of the host application, split by screen region."""

    status: str = Field(
        default="",
        description="Status line markup (room name, score, moves).",
    )
    upper: str = Field(
        default="",
        description="Upper window markup (quotes, boxed text).",
    )
    main: str = Field(
        default="",
        description="Main story window markup.",
    )
    system: bool = Field(
        default=False,
        description="Treat the whole main region as a system message.",
    )

    def region(self, name: Region) -> str:
        return getattr(self, name)

    def is_blank(self) -> bool:
        return not any(self.region(name).strip() for name in REGION_ORDER)


class NarrationSettings(BaseModel):
    """Tunables shared by the narration services."""

    echo_retention_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long spoken text is remembered for echo detection.",
    )
    echo_max_records: int = Field(
        default=30,
        ge=1,
        description="Maximum number of spoken fragments remembered.",
    )
    echo_similarity_threshold: float = Field(default=0.5, ge=0, le=1)
    echo_word_overlap_threshold: float = Field(default=0.5, ge=0, le=1)
    confidence_threshold: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Recognition results below this confidence are shown but not acted on.",
    )
    smart_back_seconds: float = Field(
        default=3.0,
        ge=0,
        description="Within this window 'back' goes to the previous unit instead of restarting.",
    )
    autoplay: bool = Field(
        default=True,
        description="Start narrating new content and resume after navigation.",
    )
    include_status: bool = Field(
        default=True,
        description="Narrate the status line before the story text.",
    )
    pronunciation_map: dict[str, str] = Field(
        default_factory=lambda: {"Anchorhead": "Anchor-head"},
        description="Word to spoken form replacements applied before synthesis.",
    )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "NarrationSettings":
        return cls(
            echo_retention_seconds=settings.echo_retention_seconds,
            echo_max_records=settings.echo_max_records,
            echo_similarity_threshold=settings.echo_similarity_threshold,
            echo_word_overlap_threshold=settings.echo_word_overlap_threshold,
            confidence_threshold=settings.confidence_threshold,
            smart_back_seconds=settings.smart_back_seconds,
            autoplay=settings.autoplay,
            include_status=settings.include_status,
            pronunciation_map=dict(settings.pronunciation_map),
        )


__all__ = [
    "NarrationContent",
    "NarrationSettings",
    "NarrationUnit",
    "REGION_ORDER",
    "Region",
    "SourceRef",
    "Voice",
]
