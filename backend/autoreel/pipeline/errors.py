"""Pipeline error taxonomy."""


class PipelineError(Exception):
    """Base class for highlight pipeline errors."""
    pass


class DecodeFailure(PipelineError):
    """A source file could not be decoded. Aborts the whole run."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to decode {path}: {reason}")


class EmptyInputFailure(PipelineError):
    """No files or no candidate clips. Reported as a warning, not fatal."""

    def __init__(self, message: str, result=None):
        self.result = result  # Whatever was computed before the input ran dry
        super().__init__(message)


class TranscriptionFailure(PipelineError):
    """Speech recognition failed or returned nothing. Export continues without captions."""
    pass


class BoundaryClampFailure(PipelineError):
    """A candidate window maps to no source file. The candidate is dropped."""

    def __init__(self, start: float, end: float):
        self.start = start
        self.end = end
        super().__init__(f"Window [{start:.2f}, {end:.2f}) falls outside every file")


class RenderFailure(PipelineError):
    """Rendering or encoding a clip failed. Aborts the export."""
    pass
