"""Platform tables, resolution and artifact selection."""

from sensor_provision.platforms.resolver import (
    ClassificationError,
    PlatformProfile,
    PlatformResolver,
    UnsupportedArchitecture,
    UnsupportedPlatform,
    resolve_platform,
)
from sensor_provision.platforms.selector import (
    ArtifactSelector,
    DeploymentParams,
    NoCompatibleSensorVariant,
    SelectionError,
    SensorSelection,
    select_artifact,
)
from sensor_provision.platforms.tables import TABLES, PlatformTable, get_table

__all__ = [
    "ClassificationError",
    "UnsupportedArchitecture",
    "UnsupportedPlatform",
    "PlatformProfile",
    "PlatformResolver",
    "resolve_platform",
    "SelectionError",
    "NoCompatibleSensorVariant",
    "DeploymentParams",
    "SensorSelection",
    "ArtifactSelector",
    "select_artifact",
    "TABLES",
    "PlatformTable",
    "get_table",
]
