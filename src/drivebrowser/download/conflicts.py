"""Name-conflict policy for one download invocation."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from drivebrowser.util.paths import path_exists, unique_path

from .prompts import ConflictChoice, Prompter

logger = logging.getLogger(__name__)


class ConflictPolicy(str, Enum):
    """Remembered answer for the remaining conflicts of an invocation."""

    UNDETERMINED = "UNDETERMINED"
    ALWAYS_ASK = "ALWAYS_ASK"
    ALWAYS_OVERWRITE = "ALWAYS_OVERWRITE"
    ALWAYS_USE_UNIQUE_NAME = "ALWAYS_USE_UNIQUE_NAME"
    ALWAYS_SKIP = "ALWAYS_SKIP"


_POLICY_BY_CHOICE: dict[ConflictChoice, ConflictPolicy] = {
    ConflictChoice.OVERWRITE: ConflictPolicy.ALWAYS_OVERWRITE,
    ConflictChoice.SKIP: ConflictPolicy.ALWAYS_SKIP,
    ConflictChoice.UNIQUE_NAME: ConflictPolicy.ALWAYS_USE_UNIQUE_NAME,
}

_CHOICE_BY_POLICY: dict[ConflictPolicy, ConflictChoice] = {
    policy: choice for choice, policy in _POLICY_BY_CHOICE.items()
}


class ConflictResolver:
    """
    Decides what happens when a download target already exists.

    Notes:
        - The policy only leaves UNDETERMINED once per invocation (after the
          first prompt). ALWAYS_ASK prompts for every conflict but never
          offers to remember again.
        - Prompts are serialized; the policy is re-read once the prompt lock
          is held so concurrent conflicts never ask twice for a remembered
          answer.
        - Every path handed out is claimed for the rest of the invocation.
          A claimed path conflicts like an existing one, because a sibling
          with the same name may still be writing it.
    """

    def __init__(self, prompter: Prompter) -> None:
        self._prompter = prompter
        self.policy = ConflictPolicy.UNDETERMINED
        self._prompt_lock = asyncio.Lock()
        self._claimed: set[str] = set()
        self._write_locks: dict[str, asyncio.Lock] = {}

    def reset(self, *, single_file: bool = False) -> None:
        """Start a new invocation. Single-file downloads skip the "always" upsell."""
        self.policy = ConflictPolicy.ALWAYS_ASK if single_file else ConflictPolicy.UNDETERMINED
        self._prompt_lock = asyncio.Lock()
        self._claimed = set()
        self._write_locks = {}

    async def resolve(self, path: str, is_directory: bool) -> Optional[str]:
        """
        Return the path to write to, or None if the item must be skipped.

        For folders, OVERWRITE means "append into the existing directory".
        """
        if not self._taken(path, is_directory):
            self._claimed.add(path)
            return path

        choice = _CHOICE_BY_POLICY.get(self.policy)
        if choice is None:
            async with self._prompt_lock:
                choice = _CHOICE_BY_POLICY.get(self.policy)
                if choice is None:
                    choice = await self._ask(path, is_directory)

        if choice is ConflictChoice.SKIP:
            logger.info("Skipping existing %s", path)
            return None
        if choice is ConflictChoice.UNIQUE_NAME:
            path = unique_path(path, is_directory, taken=self._claimed)
        self._claimed.add(path)
        return path

    def write_lock(self, path: str) -> asyncio.Lock:
        """Lock held while `path` is being written within this invocation."""
        return self._write_locks.setdefault(path, asyncio.Lock())

    def _taken(self, path: str, is_directory: bool) -> bool:
        return path in self._claimed or path_exists(path, is_directory)

    async def _ask(self, path: str, is_directory: bool) -> ConflictChoice:
        choice = await self._prompter.choose_conflict_action(path, is_directory)
        if self.policy is ConflictPolicy.UNDETERMINED:
            remember = await self._prompter.confirm_remember(choice, is_directory)
            self.policy = _POLICY_BY_CHOICE[choice] if remember else ConflictPolicy.ALWAYS_ASK
            logger.debug("Conflict policy set to %s", self.policy.value)
        return choice
