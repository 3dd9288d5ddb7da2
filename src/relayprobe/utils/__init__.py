"""relayprobe utilities: logging and bootstrap settings.

Individual modules are imported directly by consumers, e.g.:
    from ..utils.logging_config import StructuredLogger
"""

from .logging_config import JSONFormatter, StructuredLogger, get_logger, setup_logging

__all__ = ["setup_logging", "StructuredLogger", "JSONFormatter", "get_logger"]
