"""relayprobe - detect relays behind OpenAI-compatible endpoints."""

__version__ = "1.0.0"

from .detector import Detector, DetectorConfig, Result

__all__ = [
    "Detector",
    "DetectorConfig",
    "Result",
    "__version__",
]
