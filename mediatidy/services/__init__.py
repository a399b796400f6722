"""Service layer - the tidy pipeline and library maintenance."""
from .scanner import DirectoryScanner
from .file_ops import FileManager
from .planner import DestinationPlanner
from .channel import ChannelClosed, ProgressChannel
from .engine import EngineDependencies, TidyEngine, TidyWorker
from .maintenance import FixDbResult, RescanResult, fixdb, rescan
from .app_context import AppContext, run_tidy

__all__ = [
    # Pipeline
    "DirectoryScanner",
    "FileManager",
    "DestinationPlanner",
    "ProgressChannel",
    "ChannelClosed",
    "EngineDependencies",
    "TidyEngine",
    "TidyWorker",
    # Maintenance
    "rescan",
    "fixdb",
    "RescanResult",
    "FixDbResult",
    # App context
    "AppContext",
    "run_tidy",
]
