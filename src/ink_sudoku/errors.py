"""
Failure taxonomy of the recognition-and-placement pipeline.

Every one of these is recovered inside the pipeline; the user only ever
observes that nothing was placed and the capture surface cleared.
"""


class InkPipelineError(Exception):
    """Base class for recoverable pipeline failures."""


class RenderFailure(InkPipelineError):
    """The drawing is empty or its bounding box has zero area."""


class RecognitionUnavailable(InkPipelineError):
    """The classifier errored; its pass counts as zero candidates."""


class OutOfBounds(InkPipelineError):
    """The drawing's centroid lies outside the 9x9 grid."""

    def __init__(self, row: int, col: int) -> None:
        super().__init__(f"Centroid maps to ({row}, {col}), outside the grid")
        self.row = row
        self.col = col


class GivenCellProtected(InkPipelineError):
    """The drawing targets a given (pre-filled) cell."""

    def __init__(self, row: int, col: int) -> None:
        super().__init__(f"Cell ({row}, {col}) is a given clue")
        self.row = row
        self.col = col


class LowConfidenceUnresolved(InkPipelineError):
    """Neither fusion nor the shape fallback produced a digit."""
