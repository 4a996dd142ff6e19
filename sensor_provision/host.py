"""Host descriptors and the enums shared by resolution and selection."""

from dataclasses import dataclass
from enum import Enum


class OSKind(Enum):
    """Operating systems the sensor ships for."""

    LINUX = "linux"
    WINDOWS = "windows"


class TargetMode(Enum):
    """Sensor mode requested by the operator."""

    ENFORCEMENT = "enforcement"
    SENSOR = "sensor"
    LEGACY = "legacy"


class SensorTier(Enum):
    """Capability tiers a host can actually be given."""

    ENFORCEMENT = "enforcement"  # Deep visibility plus firewall enforcement
    DEEP_VISIBILITY = "deep_visibility"  # Full monitoring, no enforcement
    LEGACY = "legacy"  # Limited agent for old platforms


class TableGeneration(Enum):
    """Sensor packaging generations, each with its own platform table."""

    V2 = "2.x"  # Versioned RPMs, three capability tiers
    V3 = "3.x"  # Installer scripts, two capability tiers


class PackageManager(Enum):
    """OS package managers used for prerequisites."""

    APT = "apt"
    YUM = "yum"
    ZYPPER = "zypper"


# Highest tier first
TIER_ORDER: list[SensorTier] = [
    SensorTier.ENFORCEMENT,
    SensorTier.DEEP_VISIBILITY,
    SensorTier.LEGACY,
]

# Tiers that may satisfy a requested mode
MODE_TIERS: dict[TargetMode, frozenset[SensorTier]] = {
    TargetMode.ENFORCEMENT: frozenset(TIER_ORDER),
    TargetMode.SENSOR: frozenset({SensorTier.DEEP_VISIBILITY, SensorTier.LEGACY}),
    TargetMode.LEGACY: frozenset({SensorTier.LEGACY}),
}

# Tier each mode asks for when the host can run it
REQUESTED_TIER: dict[TargetMode, SensorTier] = {
    TargetMode.ENFORCEMENT: SensorTier.ENFORCEMENT,
    TargetMode.SENSOR: SensorTier.DEEP_VISIBILITY,
    TargetMode.LEGACY: SensorTier.LEGACY,
}

SUPPORTED_ARCHITECTURE = "x86_64"


@dataclass(frozen=True)
class HostDescriptor:
    """Facts about a host, as reported by platform detection."""

    architecture: str
    distribution: str
    distribution_family: str
    distribution_version: str
    hostname: str | None = None
    cpu_count: int | None = None
    total_memory_gb: float | None = None

    def __str__(self) -> str:
        family = f" ({self.distribution_family})" if self.distribution_family else ""
        return f"{self.distribution or 'unknown'}{family} {self.distribution_version} {self.architecture}"
