"""Configuration loading (TOML, env vars, FOREMAN.md)."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from foreman.types.config import Settings

logger = logging.getLogger(__name__)

# Load .env from current directory (and parents), won't override existing env vars
load_dotenv()

CONFIG_FILENAME = "config.toml"

# Default filenames to search for project instructions
_PROJECT_FILENAMES = ("FOREMAN.md", ".foreman/FOREMAN.md")

# Maximum size to read (prevent loading huge files into context)
_MAX_INSTRUCTIONS_BYTES = 50_000

ENV_MAP = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}

_SETTING_KEYS = (
    "provider",
    "model",
    "api_key",
    "base_url",
    "max_turns",
    "max_delegation_depth",
    "output_style",
    "sessions_dir",
)


def user_config_dir() -> Path:
    """The per-user Foreman directory (``FOREMAN_HOME`` or ``~/.foreman``)."""
    home = os.environ.get("FOREMAN_HOME")
    return Path(home).expanduser() if home else Path.home() / ".foreman"


def project_config_dir(cwd: str | Path) -> Path:
    """The per-project Foreman directory."""
    return Path(cwd) / ".foreman"


def load_toml_file(path: Path) -> dict[str, Any]:
    """Parse a TOML file, returning an empty dict when absent or invalid."""
    if not path.is_file():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Failed to parse config %s: %s", path, exc)
        return {}


def load_config_layers(cwd: str | Path) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return the (user, project) config documents for *cwd*."""
    user = load_toml_file(user_config_dir() / CONFIG_FILENAME)
    project = load_toml_file(project_config_dir(cwd) / CONFIG_FILENAME)
    return user, project


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    if provider := os.environ.get("FOREMAN_PROVIDER"):
        config["provider"] = provider
    if model := os.environ.get("FOREMAN_MODEL"):
        config["model"] = model

    return config


def load_settings(cwd: str | Path, **overrides: Any) -> Settings:
    """Resolve settings: explicit overrides > environment > project > user."""
    user, project = load_config_layers(cwd)
    merged: dict[str, Any] = {}
    for layer in (user, project, load_env_config(), overrides):
        for key in _SETTING_KEYS:
            value = layer.get(key)
            if value is not None:
                merged[key] = value

    settings = Settings(**merged)
    settings.api_key = resolve_api_key(settings.provider, settings.api_key)
    return settings


def resolve_api_key(provider: str, explicit_key: str | None = None) -> str | None:
    """Resolve API key for a provider from explicit value or environment."""
    if explicit_key:
        return explicit_key

    env_var = ENV_MAP.get(provider)
    if env_var:
        val = os.environ.get(env_var)
        if val:
            return val
    return None


def load_project_instructions(cwd: str | Path) -> str | None:
    """Load project instructions from FOREMAN.md in *cwd*.

    Returns the content or None if not found.
    """
    base = Path(cwd)
    for filename in _PROJECT_FILENAMES:
        candidate = base / filename
        if not candidate.is_file():
            continue
        try:
            size = candidate.stat().st_size
            if size > _MAX_INSTRUCTIONS_BYTES:
                logger.warning(
                    "%s is too large (%d bytes, max %d)",
                    candidate, size, _MAX_INSTRUCTIONS_BYTES,
                )
                return None
            content = candidate.read_text(encoding="utf-8").strip()
        except OSError as exc:
            logger.warning("Failed to read %s: %s", candidate, exc)
            continue
        if content:
            logger.debug("Loaded project instructions from %s", candidate)
            return content
    return None
