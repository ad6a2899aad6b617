class EditorError(Exception):
    """Base class for every error raised by the editing engine."""


class OutOfBounds(EditorError, IndexError):
    """Pixel access outside the buffer."""


class DimensionMismatch(EditorError, ValueError):
    """Mask / channel data does not line up with the buffer size."""


class InvalidParameter(EditorError, ValueError):
    """Bad argument to a transform (negative blur radius, malformed colour, ...)."""


class NoOp(EditorError):
    """
    Undo / redo requested at a history boundary.
    Expected steady-state behaviour, callers normally just ignore it.
    """


class ModelUnavailable(EditorError):
    """An inference model could not be loaded or was never supplied."""


class InferenceError(EditorError):
    """An inference call failed while running."""


class SessionBusy(EditorError):
    """A mutating request arrived while an inference call is still in flight."""


class NoImageLoaded(EditorError):
    """Session operation attempted before any image was loaded."""
