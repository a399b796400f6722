"""Terminal output."""
from .rich_logger import QuietProgressReporter, RichProgressReporter, setup_logging

__all__ = ["QuietProgressReporter", "RichProgressReporter", "setup_logging"]
