"""Resolve host facts into a platform profile."""

import logging
import re
from dataclasses import dataclass, field

from sensor_provision.host import (
    SUPPORTED_ARCHITECTURE,
    HostDescriptor,
    OSKind,
    PackageManager,
    TableGeneration,
)
from sensor_provision.platforms.tables import (
    WINDOWS_FAMILY,
    PlatformBranch,
    PlatformTable,
    VersionRule,
    get_table,
)

logger = logging.getLogger(__name__)


class ClassificationError(Exception):
    """Host cannot be classified against the active platform table."""


class UnsupportedArchitecture(ClassificationError):
    """Host CPU architecture is not x86_64."""

    def __init__(self, architecture: str) -> None:
        self.architecture = architecture
        super().__init__(
            f"Platform must be {SUPPORTED_ARCHITECTURE}, got {architecture or 'unknown'}"
        )


class UnsupportedPlatform(ClassificationError):
    """Distribution, family or version is not in the active table."""

    def __init__(self, host: HostDescriptor, generation: TableGeneration) -> None:
        self.host = host
        self.generation = generation
        self.distribution = host.distribution
        self.family = host.distribution_family
        self.version = host.distribution_version
        name = host.distribution or host.distribution_family or "unknown"
        super().__init__(
            f"{name} {host.distribution_version} not supported (table {generation.value})"
        )


@dataclass(frozen=True)
class PlatformProfile:
    """What a host is and which sensor tiers it can run."""

    os: OSKind
    generation: TableGeneration
    supports_enforcement: bool
    supports_deep_visibility: bool
    supports_legacy_deep_visibility: bool = False
    flavor: str | None = None
    package_manager: PackageManager | None = None
    lsb_package: str | None = None
    flock_package: str | None = None
    dmidecode_package: str | None = None
    # Table the profile was resolved against; None means the built-in one
    table: PlatformTable | None = field(default=None, compare=False, repr=False)

    @property
    def platform_table(self) -> PlatformTable:
        return self.table or get_table(self.generation)

    @property
    def prerequisite_packages(self) -> list[str]:
        """OS packages to ensure before installing; empty on Windows."""
        if self.os != OSKind.LINUX:
            return []
        return self.platform_table.prerequisites(
            self.lsb_package, self.dmidecode_package, self.flock_package
        )

    def __str__(self) -> str:
        caps = [
            name
            for name, flag in (
                ("enforcement", self.supports_enforcement),
                ("deep-visibility", self.supports_deep_visibility),
                ("legacy", self.supports_legacy_deep_visibility),
            )
            if flag
        ]
        label = self.flavor or self.os.value
        return f"{label} [{', '.join(caps) or 'no sensor tiers'}]"


class PlatformResolver:
    """
    Classifies hosts against one generation's platform table.

    Branches matched on the exact distribution name take precedence over
    branches matched on the distribution family. Inside a branch the version
    rules are tried in listed order and the first match wins, even if a later
    rule would also match.
    """

    def __init__(
        self,
        generation: TableGeneration = TableGeneration.V3,
        table: PlatformTable | None = None,
    ) -> None:
        self.generation = generation
        self.table: PlatformTable = table or get_table(generation)

    def resolve(self, host: HostDescriptor) -> PlatformProfile:
        """
        Resolve a host into a platform profile.

        Raises:
            UnsupportedArchitecture: architecture is not x86_64
            UnsupportedPlatform: no branch or version rule matches
        """
        if host.architecture != SUPPORTED_ARCHITECTURE:
            raise UnsupportedArchitecture(host.architecture)

        branch = self._match_branch(host)
        if branch is not None:
            return self._resolve_linux(host, branch)

        if _normalize(host.distribution_family) == WINDOWS_FAMILY:
            return self._resolve_windows(host)

        raise UnsupportedPlatform(host, self.generation)

    def _match_branch(self, host: HostDescriptor) -> PlatformBranch | None:
        distribution = _normalize(host.distribution)
        for branch in self.table.branches_matched_on("distribution"):
            if branch.match == distribution:
                return branch

        family = _normalize(host.distribution_family)
        for branch in self.table.branches_matched_on("family"):
            if branch.match == family:
                return branch

        return None

    def _resolve_linux(self, host: HostDescriptor, branch: PlatformBranch) -> PlatformProfile:
        rule = self._match_rule(branch, host.distribution_version)
        if rule is None:
            raise UnsupportedPlatform(host, self.generation)

        profile = PlatformProfile(
            os=branch.os,
            generation=self.generation,
            table=self.table,
            flavor=rule.flavor,
            supports_enforcement=rule.enforcement,
            supports_deep_visibility=rule.deep_visibility,
            supports_legacy_deep_visibility=rule.legacy_deep_visibility,
            package_manager=branch.package_manager,
            lsb_package=branch.lsb_package,
            flock_package=branch.flock_package,
            dmidecode_package=rule.dmidecode_package or branch.dmidecode_package,
        )
        logger.info(f"Resolved {host} to {profile}")
        return profile

    def _match_rule(self, branch: PlatformBranch, version: str) -> VersionRule | None:
        for rule in branch.rules:
            if re.search(rule.pattern, version or ""):
                logger.debug(f"{branch.name} {version}: matched {rule.pattern!r} -> {rule.flavor}")
                return rule
            logger.debug(f"{branch.name} {version}: no match for {rule.pattern!r}")
        return None

    def _resolve_windows(self, host: HostDescriptor) -> PlatformProfile:
        windows = self.table.windows
        if not re.search(windows.version_pattern, host.distribution_version or ""):
            raise UnsupportedPlatform(host, self.generation)

        profile = PlatformProfile(
            os=OSKind.WINDOWS,
            generation=self.generation,
            table=self.table,
            supports_enforcement=windows.enforcement,
            supports_deep_visibility=windows.deep_visibility,
            supports_legacy_deep_visibility=windows.legacy_deep_visibility,
        )
        logger.info(f"Resolved {host} to {profile}")
        return profile


def _normalize(name: str | None) -> str:
    return (name or "").strip().lower()


def resolve_platform(
    host: HostDescriptor,
    generation: TableGeneration = TableGeneration.V3,
) -> PlatformProfile:
    """Convenience function to resolve a host against one generation."""
    return PlatformResolver(generation).resolve(host)
