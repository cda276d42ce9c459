"""
Inference Stage

Fixed-rate scheduling of Detector calls with single in-flight admission.
"""

from livedetect.inference.scheduler import InferenceScheduler, TickOutcome

__all__ = ["InferenceScheduler", "TickOutcome"]
