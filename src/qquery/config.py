"""Configuration constants and query settings for qquery."""

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# API token location. First file found is used.
API_TOKEN_FILES: list[Path] = [
    Path("~/.config/qquery-token.txt").expanduser(),
    Path("~/.config/secret/qquery-token.txt").expanduser(),
    Path(f"/run/user/{os.getuid()}/logseq-api-token"),
]

# Logseq HTTP API server endpoint (Settings > Features > HTTP APIs server).
API_URL: str = os.environ.get("QQUERY_API_URL", "http://127.0.0.1:12315/api")

# Settings file location. First file found is used.
SETTINGS_FILES: list[Path] = [
    Path("~/.config/qquery/settings.json").expanduser(),
    Path("~/.qquery.json").expanduser(),
]

# Default archive location
DEFAULT_DATA_DIR: Path = Path("~/.local/share/qquery").expanduser()

DEFAULT_MAX_TASKS = 10

# Option name -> environment variable overriding it.
_ENV_OPTIONS: dict[str, str] = {
    "maxTasks": "QQUERY_MAX_TASKS",
    "tagsToHide": "QQUERY_TAGS_TO_HIDE",
    "tagsToIgnore": "QQUERY_TAGS_TO_IGNORE",
    "namespacesToIgnore": "QQUERY_NAMESPACES_TO_IGNORE",
}


def split_names(value: Any) -> tuple[str, ...]:
    """Split a comma-separated option into lowercase names. Unset or empty gives ()."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        parts = [str(v) for v in value]
    else:
        parts = str(value).split(",")
    return tuple(p.strip().lower() for p in parts if p.strip())


@dataclass(frozen=True)
class QuerySettings:
    """The four user options a query runs under."""

    max_tasks: int = DEFAULT_MAX_TASKS
    tags_to_hide: tuple[str, ...] = ()
    tags_to_ignore: tuple[str, ...] = ()
    namespaces_to_ignore: tuple[str, ...] = ()

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "QuerySettings":
        """Build settings from the host's option names (maxTasks, tagsToHide, ...)."""
        raw_max = options.get("maxTasks")
        if raw_max is None or str(raw_max).strip() == "":
            max_tasks = DEFAULT_MAX_TASKS
        else:
            max_tasks = int(raw_max)
        if max_tasks < 0:
            msg = f"maxTasks must be >= 0, got {max_tasks}"
            raise ValueError(msg)
        return cls(
            max_tasks=max_tasks,
            tags_to_hide=split_names(options.get("tagsToHide")),
            tags_to_ignore=split_names(options.get("tagsToIgnore")),
            namespaces_to_ignore=split_names(options.get("namespacesToIgnore")),
        )


def resolve_settings_file() -> Path | None:
    """Return the first existing settings file, or None."""
    for candidate in SETTINGS_FILES:
        if candidate.is_file():
            return candidate
    return None


def load_settings(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> QuerySettings:
    """Load settings from a JSON file, with QQUERY_* environment overrides.

    Args:
        path: Settings file. Defaults to the first existing entry of SETTINGS_FILES.
        environ: Environment mapping (defaults to os.environ).
    """
    env = os.environ if environ is None else environ
    options: dict[str, Any] = {}

    settings_path = path or resolve_settings_file()
    if settings_path is not None:
        options.update(json.loads(settings_path.read_text(encoding="utf-8")))

    for option, var in _ENV_OPTIONS.items():
        if var in env:
            options[option] = env[var]

    return QuerySettings.from_options(options)
