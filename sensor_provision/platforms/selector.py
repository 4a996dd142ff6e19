"""Sensor artifact selection from a platform profile and a requested mode."""

import logging
from dataclasses import dataclass

from sensor_provision.host import (
    MODE_TIERS,
    REQUESTED_TIER,
    TIER_ORDER,
    OSKind,
    SensorTier,
    TableGeneration,
    TargetMode,
)
from sensor_provision.platforms.resolver import PlatformProfile

logger = logging.getLogger(__name__)

# Suffix inserted before ".x86_64.rpm" in 2.x package names
RPM_TIER_SUFFIXES: dict[SensorTier, str] = {
    SensorTier.ENFORCEMENT: ".enforcer",
    SensorTier.DEEP_VISIBILITY: ".sensor",
    SensorTier.LEGACY: "",
}

V3_LINUX_INSTALLERS: dict[SensorTier, str] = {
    SensorTier.ENFORCEMENT: "tetration_installer_enforcer_linux.sh",
    SensorTier.DEEP_VISIBILITY: "tetration_installer_sensor_linux.sh",
}

V3_WINDOWS_INSTALLERS: dict[SensorTier, str] = {
    SensorTier.ENFORCEMENT: "tetration_installer_enforcer_windows.ps1",
    SensorTier.DEEP_VISIBILITY: "tetration_installer_sensor_windows.ps1",
}

V2_WINDOWS_INSTALLER = "WindowsSensorInstaller.exe"


class SelectionError(Exception):
    """No installer artifact can be chosen for a profile."""


class NoCompatibleSensorVariant(SelectionError):
    """Platform is known but no tier satisfies the requested mode."""

    def __init__(self, profile: PlatformProfile, target_mode: TargetMode) -> None:
        self.profile = profile
        self.target_mode = target_mode
        super().__init__(
            f"unable to find a supported sensor/enforcer combination for this host "
            f"({profile}, requested {target_mode.value})"
        )


@dataclass(frozen=True)
class DeploymentParams:
    """Fixed deployment parameters baked into 2.x package names."""

    product: str = "tet-sensor"
    sensor_version: str = "2.0.1.34-1"
    cluster: str = "marla"


@dataclass(frozen=True)
class SensorSelection:
    """Result of artifact selection."""

    artifact_name: str
    tier: SensorTier
    requested: TargetMode
    profile: PlatformProfile

    @property
    def downgraded(self) -> bool:
        """True if the granted tier is narrower than the one requested."""
        return self.tier != REQUESTED_TIER[self.requested]

    def __str__(self) -> str:
        return f"Selected {self.tier.value}: {self.artifact_name}"


class ArtifactSelector:
    """Picks the highest sensor tier a profile supports for a requested mode."""

    def __init__(self, params: DeploymentParams | None = None) -> None:
        self.params = params or DeploymentParams()

    def select(self, profile: PlatformProfile, target_mode: TargetMode) -> SensorSelection:
        """
        Select the installer artifact for a profile.

        Args:
            profile: Resolved platform profile
            target_mode: Mode requested by the operator

        Returns:
            SensorSelection with the artifact and the tier actually granted

        Raises:
            NoCompatibleSensorVariant: no tier satisfies the request
        """
        tier = self._select_tier(profile, target_mode)
        if tier is None:
            raise NoCompatibleSensorVariant(profile, target_mode)

        selection = SensorSelection(
            artifact_name=self.artifact_name(profile, tier),
            tier=tier,
            requested=target_mode,
            profile=profile,
        )
        if selection.downgraded:
            logger.warning(
                f"Requested {target_mode.value} but {profile} only supports {tier.value}"
            )
        logger.info(str(selection))
        return selection

    def _select_tier(self, profile: PlatformProfile, target_mode: TargetMode) -> SensorTier | None:
        table = profile.platform_table
        allowed = MODE_TIERS[target_mode]

        for tier in TIER_ORDER:
            if tier not in allowed or not self._supports(profile, tier):
                continue
            if not table.offers(tier):
                logger.warning(
                    f"{profile} is flagged for {tier.value} but table "
                    f"{profile.generation.value} has no {tier.value} artifact; "
                    "operator clarification needed"
                )
                continue
            return tier

        return None

    def _supports(self, profile: PlatformProfile, tier: SensorTier) -> bool:
        if tier == SensorTier.ENFORCEMENT:
            return profile.supports_enforcement
        if tier == SensorTier.DEEP_VISIBILITY:
            return profile.supports_deep_visibility
        return profile.supports_legacy_deep_visibility

    def artifact_name(self, profile: PlatformProfile, tier: SensorTier) -> str:
        """Build the installer file name for a profile and tier."""
        if profile.generation == TableGeneration.V2:
            if profile.os == OSKind.WINDOWS:
                return V2_WINDOWS_INSTALLER
            return (
                f"{self.params.product}-{self.params.sensor_version}."
                f"{profile.flavor}-{self.params.cluster}"
                f"{RPM_TIER_SUFFIXES[tier]}.x86_64.rpm"
            )

        installers = V3_WINDOWS_INSTALLERS if profile.os == OSKind.WINDOWS else V3_LINUX_INSTALLERS
        return installers[tier]


def select_artifact(
    profile: PlatformProfile,
    target_mode: TargetMode,
    params: DeploymentParams | None = None,
) -> SensorSelection:
    """Convenience function to select an artifact with default parameters."""
    return ArtifactSelector(params).select(profile, target_mode)
