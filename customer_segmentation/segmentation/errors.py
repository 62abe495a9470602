"""Exceptions raised by the segmentation pipeline."""


class SegmentationError(ValueError):
    """Base class for segmentation failures caused by the input data."""


class UnsupportedAlgorithmError(SegmentationError):
    """The requested algorithm is not one of the supported ones."""

    def __init__(self, algorithm: str, supported: tuple[str, ...]):
        self.algorithm = algorithm
        self.supported = supported
        super().__init__(
            f"Unsupported algorithm: {algorithm!r} (expected one of {', '.join(supported)})"
        )


class EmptyAssignmentsError(SegmentationError):
    """Summary metrics were requested for an empty assignment list."""


class DegenerateClusterInputError(SegmentationError):
    """Cluster normalisation would divide by zero."""
