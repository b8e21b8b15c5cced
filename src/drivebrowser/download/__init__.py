"""Download orchestration and conflict handling."""

from __future__ import annotations

from .conflicts import ConflictPolicy, ConflictResolver
from .orchestrator import DownloadOrchestrator, normalize_download_set
from .prompts import ConflictChoice, ConsolePrompter, Prompter

__all__ = [
    "ConflictChoice",
    "ConflictPolicy",
    "ConflictResolver",
    "ConsolePrompter",
    "DownloadOrchestrator",
    "Prompter",
    "normalize_download_set",
]
