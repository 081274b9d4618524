from __future__ import annotations


class DetectionError(Exception):
    """
    Base class for failures of a single detection request.

    None of these are retried by the pipeline: an invalid image or a broken
    model contract will not change on a second attempt.
    """


class InvalidImageError(DetectionError, ValueError):
    """The input image has zero area or is not an image-shaped array."""


class InferenceError(DetectionError, RuntimeError):
    """The inference collaborator rejected the input tensor or failed internally."""


class MalformedOutputError(DetectionError, ValueError):
    """The model output does not match the expected `rows x (4 + num_classes)` layout."""
