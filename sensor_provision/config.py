"""Configuration management for sensor-provision."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sensor_provision.host import TableGeneration, TargetMode
from sensor_provision.platforms.selector import DeploymentParams

logger = logging.getLogger(__name__)

# Default config locations
CONFIG_PATHS = [
    Path.home() / ".config" / "sensor-provision" / "config.json",
    Path.home() / ".sensor-provision.json",
]

DEFAULT_STAGING_DIR = "/tmp"
DEFAULT_WINDOWS_INSTALL_DIR = "C:\\tetter"


def _enum_or_default(enum_cls, value: Any, default):
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"Unknown {enum_cls.__name__} in config: {value}, using {default.value}")
        return default


def deployment_from_dict(data: dict[str, Any]) -> DeploymentParams:
    defaults = DeploymentParams()
    return DeploymentParams(
        product=data.get("product", defaults.product),
        sensor_version=data.get("sensor_version", defaults.sensor_version),
        cluster=data.get("cluster", defaults.cluster),
    )


@dataclass
class Config:
    """Main configuration for sensor-provision."""

    generation: TableGeneration = TableGeneration.V3
    target_mode: TargetMode = TargetMode.ENFORCEMENT
    deployment: DeploymentParams = field(default_factory=DeploymentParams)
    source_dir: Path = field(default_factory=lambda: Path.cwd() / "files")
    staging_dir: str = DEFAULT_STAGING_DIR
    windows_install_dir: str = DEFAULT_WINDOWS_INSTALL_DIR
    refresh_repos: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create config from a dictionary."""
        defaults = cls()
        source_dir = Path(data["source_dir"]) if data.get("source_dir") else defaults.source_dir

        return cls(
            generation=_enum_or_default(TableGeneration, data.get("generation"), defaults.generation),
            target_mode=_enum_or_default(TargetMode, data.get("target_mode"), defaults.target_mode),
            deployment=deployment_from_dict(data.get("deployment") or {}),
            source_dir=source_dir,
            staging_dir=data.get("staging_dir", DEFAULT_STAGING_DIR),
            windows_install_dir=data.get("windows_install_dir", DEFAULT_WINDOWS_INSTALL_DIR),
            refresh_repos=data.get("refresh_repos", True),
        )

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load configuration from file or return defaults."""
        if path:
            paths_to_try = [path]
        else:
            paths_to_try = CONFIG_PATHS

        for config_path in paths_to_try:
            if config_path.exists():
                try:
                    with open(config_path) as f:
                        data = json.load(f)
                    logger.info(f"Loaded config from {config_path}")
                    return cls.from_dict(data)
                except (json.JSONDecodeError, OSError) as e:
                    logger.warning(f"Failed to load config from {config_path}: {e}")

        logger.info("Using default configuration")
        return cls()

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "generation": self.generation.value,
            "target_mode": self.target_mode.value,
            "deployment": {
                "product": self.deployment.product,
                "sensor_version": self.deployment.sensor_version,
                "cluster": self.deployment.cluster,
            },
            "source_dir": str(self.source_dir),
            "staging_dir": self.staging_dir,
            "windows_install_dir": self.windows_install_dir,
            "refresh_repos": self.refresh_repos,
        }

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        save_path = path or CONFIG_PATHS[0]
        save_path.parent.mkdir(parents=True, exist_ok=True)
        with open(save_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved config to {save_path}")

    def validate(self) -> list[str]:
        """Validate the configuration and return any issues."""
        issues: list[str] = []

        if not isinstance(self.generation, TableGeneration):
            issues.append(f"Unknown generation: {self.generation}")

        if not isinstance(self.target_mode, TargetMode):
            issues.append(f"Unknown target_mode: {self.target_mode}")

        if self.generation == TableGeneration.V2:
            for name in ("product", "sensor_version", "cluster"):
                if not getattr(self.deployment, name):
                    issues.append(f"Generation 2.x requires deployment.{name}")

        if not self.source_dir.is_dir():
            issues.append(f"Source directory {self.source_dir} does not exist")

        if not self.staging_dir:
            issues.append("staging_dir must not be empty")

        return issues
