"""Runtime configuration for drivebrowser."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

_ENV_PREFIX = "DRIVEBROWSER_"


def _default_thumbnails_dir() -> str:
    cache_home = os.environ.get("XDG_CACHE_HOME") or os.path.join(
        os.path.expanduser("~"), ".cache"
    )
    return os.path.join(cache_home, "drivebrowser", "thumbnails")


@dataclass(frozen=True)
class BrowserConfig:
    """
    Tunables shared by the cache, the feeds and the download engine.

    Notes:
        - `max_concurrent_downloads` bounds leaf transfers only; folder
          exploration is not throttled.
        - `progress_report_interval` is also used as the transport chunk size.
    """

    max_concurrent_downloads: int = 3
    progress_report_interval: int = 1_048_576
    list_page_size: int = 50
    activity_minimum_entries: int = 20
    search_minimum_results: int = 50
    thumbnails_dir: str = ""
    sidecar_suffixes: tuple[str, ...] = (".meta",)
    max_retries: int = 3
    initial_retry_delay_sec: float = 1.0

    def __post_init__(self) -> None:
        if not self.thumbnails_dir:
            object.__setattr__(self, "thumbnails_dir", _default_thumbnails_dir())
        for name in (
            "max_concurrent_downloads",
            "progress_report_interval",
            "list_page_size",
            "activity_minimum_entries",
            "search_minimum_results",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"BrowserConfig.{name} must be positive")
        if self.max_retries < 0:
            raise ValueError("BrowserConfig.max_retries must not be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> BrowserConfig:
        """
        Build a config from DRIVEBROWSER_* variables.

        Example: DRIVEBROWSER_MAX_CONCURRENT_DOWNLOADS=5
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}

        for name, caster in (
            ("max_concurrent_downloads", int),
            ("progress_report_interval", int),
            ("list_page_size", int),
            ("activity_minimum_entries", int),
            ("search_minimum_results", int),
            ("max_retries", int),
            ("initial_retry_delay_sec", float),
            ("thumbnails_dir", str),
        ):
            raw = env.get(_ENV_PREFIX + name.upper(), "").strip()
            if not raw:
                continue
            try:
                overrides[name] = caster(raw)
            except ValueError as exc:
                raise ValueError(f"{_ENV_PREFIX}{name.upper()} is invalid: {raw!r}") from exc

        raw_suffixes = env.get(_ENV_PREFIX + "SIDECAR_SUFFIXES")
        if raw_suffixes is not None:
            overrides["sidecar_suffixes"] = tuple(
                s.strip() for s in raw_suffixes.split(",") if s.strip()
            )

        return cls(**overrides)

    def with_overrides(self, **changes: Any) -> BrowserConfig:
        return replace(self, **changes)
