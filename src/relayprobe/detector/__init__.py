"""Probe suite, verdict aggregation and result history."""

from .config import DetectorConfig
from .engine import Detector
from .history import ResultHistory
from .models import ProbeOutcome, Result, TokenCounts
from .probes import (
    PROBES,
    check_logprobs,
    check_max_tokens,
    check_multiple_responses,
    check_stop_sequence,
)

__all__ = [
    "Detector",
    "DetectorConfig",
    "ResultHistory",
    "Result",
    "ProbeOutcome",
    "TokenCounts",
    "PROBES",
    "check_max_tokens",
    "check_logprobs",
    "check_multiple_responses",
    "check_stop_sequence",
]
