"""Configuration controller for YAML-based settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

SECTIONS = (
    "logging",
    "pipeline",
    "sampler",
    "environment",
    "tracker",
    "clearance",
    "policy",
    "narration",
    "lighting",
    "camera",
    "imx500",
)


@dataclass(frozen=True)
class ConfigPaths:
    """Filesystem paths for configuration files."""

    config_dir: Path
    config_file: Path
    override_file: Path


class ConfigController:
    """Singleton controller for loading and updating configuration."""

    _instance: "ConfigController | None" = None

    def __init__(self, config_file: str = "default.yaml", config_dir: Path | None = None) -> None:
        if ConfigController._instance is not None:
            raise RuntimeError("You cannot create another ConfigController class")

        config_dir = config_dir if config_dir is not None else Path("config")
        self.paths = ConfigPaths(
            config_dir=config_dir,
            config_file=config_dir / config_file,
            override_file=config_dir / "override.yaml",
        )
        self.config: dict[str, Any] = {}
        self.load_config()
        ConfigController._instance = self

    @classmethod
    def get_instance(cls) -> "ConfigController":
        """Return the singleton instance of the controller."""

        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def load_config(self) -> None:
        """Load configuration from default and override YAML files."""

        with self.paths.config_file.open("r", encoding="utf-8") as file:
            config = yaml.safe_load(file) or {}

        if self.paths.override_file.exists():
            with self.paths.override_file.open("r", encoding="utf-8") as file:
                override_config = yaml.safe_load(file) or {}
            if override_config:
                config = self._deep_merge(config, override_config)

        self.config = self._normalize_sections(config)

    def save_config(self, config: dict[str, Any]) -> None:
        """Persist configuration to override.yaml, archiving previous overrides."""

        if self.paths.override_file.exists():
            archive_index = 1
            archive_file = self._archive_path(archive_index)
            while archive_file.exists():
                archive_index += 1
                archive_file = self._archive_path(archive_index)
            self.paths.override_file.rename(archive_file)

        with self.paths.override_file.open("w", encoding="utf-8") as file:
            yaml.safe_dump(config, file, allow_unicode=True)

    def get_config(self) -> dict[str, Any]:
        """Return the currently loaded configuration."""

        return dict(self.config)

    def get_section(self, name: str) -> dict[str, Any]:
        """Return a copy of one configuration section (empty when absent)."""

        return dict(self.config.get(name) or {})

    def set_config(self, config: dict[str, Any]) -> None:
        """Set and persist configuration values."""

        self.config = self._normalize_sections(config)
        self.save_config(self.config)

    def _archive_path(self, index: int) -> Path:
        filename = f"override_{index:04d}.yaml"
        return self.paths.config_dir / filename

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge dictionaries, overriding base values with override values."""

        merged = dict(base)
        for key, value in override.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _normalize_sections(self, config: Mapping[str, Any]) -> dict[str, Any]:
        """Guarantee every known section is a mapping.

        The flat ``logging_level`` key is still honoured and folded into the
        ``logging`` section when that section does not set a level itself.
        """

        normalized = dict(config)
        for name in SECTIONS:
            section = normalized.get(name)
            normalized[name] = dict(section) if isinstance(section, Mapping) else {}

        logging_cfg = normalized["logging"]
        if "level" not in logging_cfg and "logging_level" in normalized:
            logging_cfg["level"] = str(normalized["logging_level"])
        return normalized


def section(config: Mapping[str, Any] | None, name: str) -> Mapping[str, Any]:
    """Return ``config[name]`` when it is a mapping, otherwise an empty dict."""

    if not isinstance(config, Mapping):
        return {}
    value = config.get(name)
    return value if isinstance(value, Mapping) else {}
