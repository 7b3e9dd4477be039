"""
Error taxonomy for the inference pipeline.

None of these cross EmotionDetector.detect_with_fallback.
"""
from __future__ import annotations
from typing import List


class EmotionPipelineError(RuntimeError):
    """Base class for pipeline failures."""


class RenderContextUnavailable(EmotionPipelineError):
    """No frame could be rendered/encoded for this attempt."""


class ClassifierInvocationFailed(EmotionPipelineError):
    """The loaded classifier raised or returned malformed output."""


class ModelCandidateLoadFailed(EmotionPipelineError):
    def __init__(self, candidate, cause: BaseException):
        self.candidate = candidate
        self.cause = cause
        super().__init__(f"Failed to load {candidate}: {cause}")


class AllModelCandidatesFailed(EmotionPipelineError):
    def __init__(self, failures: List[ModelCandidateLoadFailed]):
        self.failures = list(failures)
        tried = ", ".join(str(f.candidate) for f in self.failures) or "none"
        super().__init__(f"All emotion detection models failed to load (tried: {tried})")
