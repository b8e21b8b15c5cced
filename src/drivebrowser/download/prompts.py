"""Interactive decisions the download engine delegates to the host."""

from __future__ import annotations

import asyncio
import os
from enum import Enum
from typing import Optional, Protocol

import click


class ConflictChoice(str, Enum):
    """Answer to a single name conflict."""

    OVERWRITE = "OVERWRITE"  # "Append" for folders
    SKIP = "SKIP"
    UNIQUE_NAME = "UNIQUE_NAME"


class Prompter(Protocol):
    """Host-provided dialogs. Tests inject scripted implementations."""

    async def choose_directory(self) -> Optional[str]:
        """Return a download directory, or None if the user declined."""
        ...

    async def choose_conflict_action(self, path: str, is_directory: bool) -> ConflictChoice: ...

    async def confirm_remember(self, choice: ConflictChoice, is_directory: bool) -> bool:
        """Ask whether `choice` should resolve every further conflict."""
        ...


def affirmative_label(is_directory: bool) -> str:
    return "Append" if is_directory else "Overwrite"


class ConsolePrompter:
    """
    Prompter for terminals, built on click.

    click blocks on stdin, so every prompt runs in a worker thread.
    """

    async def choose_directory(self) -> Optional[str]:
        answer = await asyncio.to_thread(
            click.prompt,
            "Download file(s) to (empty to cancel)",
            default="",
            show_default=False,
        )
        answer = answer.strip()
        return os.path.expanduser(answer) if answer else None

    async def choose_conflict_action(self, path: str, is_directory: bool) -> ConflictChoice:
        noun = "Folder" if is_directory else "File"
        click.echo(
            f"{noun} '{os.path.basename(path)}' already exists at path: {os.path.dirname(path)}"
        )
        actions = {
            affirmative_label(is_directory).lower(): ConflictChoice.OVERWRITE,
            "skip": ConflictChoice.SKIP,
            "unique": ConflictChoice.UNIQUE_NAME,
        }
        answer = await asyncio.to_thread(
            click.prompt,
            "Action",
            type=click.Choice(list(actions), case_sensitive=False),
        )
        return actions[answer.lower()]

    async def confirm_remember(self, choice: ConflictChoice, is_directory: bool) -> bool:
        action = {
            ConflictChoice.OVERWRITE: affirmative_label(is_directory),
            ConflictChoice.SKIP: "Skip",
            ConflictChoice.UNIQUE_NAME: "Use Unique Name",
        }[choice]
        return await asyncio.to_thread(
            click.confirm, f"Apply '{action}' to all further conflicts?", default=False
        )
