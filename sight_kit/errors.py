"""
Per-frame failure taxonomy for the detection core.

None of these are fatal to the process: `DetectionPipeline.detect` turns every
one of them into an empty result for the frame that raised it.
"""


class DetectionError(Exception):
    """Base class for detection pipeline failures."""


class ModelUnavailable(DetectionError):
    """Inference engine missing, not initialized, or failed to load."""


class EmptyLabelTable(DetectionError):
    """The label table has no classes; nothing can be detected."""


class OutOfRange(DetectionError, IndexError):
    """Decoder read past the declared (N, C) bounds or the end of the buffer."""


class MalformedOutput(DetectionError, ValueError):
    """Model output has an unusable shape or inconsistent declared dimensions."""
