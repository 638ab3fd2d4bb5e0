"""Exception types raised by narration collaborators."""


class NarratorError(RuntimeError):
    """Base error for the narration engine."""


class SynthesisError(NarratorError):
    """Raised by a synthesizer adapter when a unit could not be voiced."""


class InvalidContentError(NarratorError, ValueError):
    """Raised when content names a region the segmenter does not know."""


__all__ = ["InvalidContentError", "NarratorError", "SynthesisError"]
