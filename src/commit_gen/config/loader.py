"""
Configuration loader for commit_gen.

Configuration is stored as JSON. The first file found in the following
order is deep-merged over the built-in defaults:

1. the path given with ``--config`` (which must exist)
2. ``<repo root>/.commit-gen.json``
3. ``~/.config/commit-gen/config.json``
4. ``~/.commit-gen/config.json``
5. ``~/.commit-gen.json``

If no file exists, the defaults are used unchanged. The merged data is
validated once and returned as an immutable :class:`Config`; any type or
range problem raises :class:`ConfigError` naming the offending key.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from commit_gen.config.defaults import DEFAULT_CONFIG
from commit_gen.config.settings import (
    CommitConfig,
    Config,
    FormattingPolicy,
    GitConfig,
    ModelConfig,
    PromptsConfig,
    SelectionCriteria,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


REPO_CONFIG_NAME = ".commit-gen.json"


class ConfigError(Exception):
    """Raised when a configuration file is missing, unreadable or invalid."""

    pass


def _get_home_directory() -> Path:
    return Path.home()


def candidate_paths(repo_root: Optional[Path] = None) -> List[Path]:
    """Return the implicit configuration locations in priority order."""
    home = _get_home_directory()
    paths: List[Path] = []
    if repo_root is not None:
        paths.append(repo_root / REPO_CONFIG_NAME)
    paths.extend(
        [
            home / ".config" / "commit-gen" / "config.json",
            home / ".commit-gen" / "config.json",
            home / ".commit-gen.json",
        ]
    )
    return paths


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a JSON object")
    return data


def _merge(base: Dict[str, Any], override: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Keys unknown to ``base`` are logged and dropped.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        dotted = f"{prefix}{key}"
        if key not in base:
            logger.warning("Ignoring unknown configuration key '%s'", dotted)
            continue
        if isinstance(base[key], dict):
            if not isinstance(value, dict):
                raise ConfigError(f"'{dotted}' must be a table of settings")
            merged[key] = _merge(base[key], value, prefix=f"{dotted}.")
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# Typed accessors
# ---------------------------------------------------------------------------
def _get_bool(data: Dict[str, Any], section: str, key: str) -> bool:
    value = data[section][key]
    if not isinstance(value, bool):
        raise ConfigError(f"'{section}.{key}' must be a boolean")
    return value


def _get_int(data: Dict[str, Any], section: str, key: str, minimum: int = 0) -> int:
    value = data[section][key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{section}.{key}' must be an integer")
    if value < minimum:
        raise ConfigError(f"'{section}.{key}' must be at least {minimum}, got {value}")
    return value


def _get_float(data: Dict[str, Any], section: str, key: str, low: float, high: Optional[float]) -> float:
    value = data[section][key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{section}.{key}' must be a number")
    if value < low or (high is not None and value > high):
        bounds = f"[{low}, {high}]" if high is not None else f"> {low}"
        raise ConfigError(f"'{section}.{key}' must be within {bounds}, got {value}")
    return float(value)


def _get_str(data: Dict[str, Any], section: str, key: str) -> str:
    value = data[section][key]
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{section}.{key}' must be a non-empty string")
    return value


def _get_patterns(data: Dict[str, Any]) -> Tuple[str, ...]:
    value = data["git"]["exclude_patterns"]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError("'git.exclude_patterns' must be a list of strings")
    return tuple(item for item in value if item.strip())


def build_config(data: Dict[str, Any]) -> Config:
    """Validate merged configuration data and build a :class:`Config`."""
    model = ModelConfig(
        name=_get_str(data, "model", "name"),
        base_url=_get_str(data, "model", "base_url").rstrip("/"),
        port=_get_int(data, "model", "port", minimum=1),
        request_timeout=_get_float(data, "model", "request_timeout", 0.0, None),
        top_p=_get_float(data, "model", "top_p", 0.0, 1.0),
        max_tokens=_get_int(data, "model", "max_tokens", minimum=1),
        file_selection_temperature=_get_float(data, "model", "file_selection_temperature", 0.0, 1.0),
        commit_temperature=_get_float(data, "model", "commit_temperature", 0.0, 1.0),
    )
    if model.request_timeout <= 0:
        raise ConfigError("'model.request_timeout' must be greater than 0")

    commit = CommitConfig(
        conventional=_get_bool(data, "commit", "conventional"),
        emoji=_get_bool(data, "commit", "emoji"),
        max_message_length=_get_int(data, "commit", "max_message_length", minimum=10),
    )

    git = GitConfig(
        include_staged=_get_bool(data, "git", "include_staged"),
        include_unstaged=_get_bool(data, "git", "include_unstaged"),
        exclude_patterns=_get_patterns(data),
    )

    selection = SelectionCriteria(
        min_files=_get_int(data, "selection", "min_files"),
        max_files=_get_int(data, "selection", "max_files", minimum=1),
        prioritize_src=_get_bool(data, "selection", "prioritize_src"),
        exclude_tests=_get_bool(data, "selection", "exclude_tests"),
        min_changes=_get_int(data, "selection", "min_changes"),
        exclude_patterns=git.exclude_patterns,
    )
    if selection.min_files > selection.max_files:
        raise ConfigError(
            f"'selection.min_files' ({selection.min_files}) must not exceed "
            f"'selection.max_files' ({selection.max_files})"
        )

    formatting = FormattingPolicy(
        max_diff_lines=_get_int(data, "formatting", "max_diff_lines", minimum=1),
        preview_lines=_get_int(data, "formatting", "preview_lines"),
        summary_lines=_get_int(data, "formatting", "summary_lines"),
        indent_size=_get_int(data, "formatting", "indent_size"),
        show_file_stats=_get_bool(data, "formatting", "show_file_stats"),
    )
    if formatting.preview_lines > formatting.max_diff_lines:
        raise ConfigError(
            f"'formatting.preview_lines' ({formatting.preview_lines}) must not exceed "
            f"'formatting.max_diff_lines' ({formatting.max_diff_lines})"
        )

    prompts = PromptsConfig(
        file_selection_system=_get_str(data, "prompts", "file_selection_system"),
        file_selection_context=_get_str(data, "prompts", "file_selection_context"),
        commit_system=_get_str(data, "prompts", "commit_system"),
        commit_context=_get_str(data, "prompts", "commit_context"),
    )

    return Config(
        model=model,
        commit=commit,
        git=git,
        selection=selection,
        formatting=formatting,
        prompts=prompts,
    )


def load_config(config_path: Optional[Path] = None, repo_root: Optional[Path] = None) -> Config:
    """Load, merge and validate the configuration.

    Parameters
    ----------
    config_path : Path, optional
        Explicit configuration file. It must exist.
    repo_root : Path, optional
        Repository root, used to look for a per-repository file.

    Returns
    -------
    Config
        The validated configuration.

    Raises
    ------
    ConfigError
        If the explicit file is missing, any file is malformed, or a
        value has the wrong type or is out of range.
    """
    data: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
    source: Optional[Path] = None

    if config_path is not None:
        if not config_path.exists():
            logger.error("Configuration file '%s' does not exist", config_path)
            raise ConfigError(f"Missing configuration file: {config_path}")
        source = config_path
    else:
        for candidate in candidate_paths(repo_root):
            if candidate.exists():
                source = candidate
                break

    if source is not None:
        data = _merge(DEFAULT_CONFIG, _read_json(source))
        logger.debug("Loaded configuration from: %s", source)
    else:
        logger.debug("No configuration file found; using built-in defaults")

    return build_config(data)
