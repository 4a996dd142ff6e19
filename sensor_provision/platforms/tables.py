"""Platform decision tables for each sensor packaging generation."""

from dataclasses import dataclass, field

from sensor_provision.host import OSKind, PackageManager, SensorTier, TableGeneration


@dataclass(frozen=True)
class VersionRule:
    """One row of a branch: a version pattern and what it grants."""

    pattern: str  # Searched against the version string; anchors belong in the pattern
    flavor: str
    enforcement: bool
    deep_visibility: bool
    legacy_deep_visibility: bool = False
    dmidecode_package: str | None = None  # Overrides the branch default


@dataclass(frozen=True)
class PlatformBranch:
    """A Linux distribution or family and its ordered version rules."""

    name: str
    match: str
    match_on: str  # "distribution" or "family"
    package_manager: PackageManager
    lsb_package: str
    flock_package: str
    dmidecode_package: str
    rules: tuple[VersionRule, ...]
    os: OSKind = OSKind.LINUX


@dataclass(frozen=True)
class WindowsBranch:
    """Windows has no flavors, only a supported version range."""

    version_pattern: str
    enforcement: bool
    deep_visibility: bool
    legacy_deep_visibility: bool = False


@dataclass(frozen=True)
class PlatformTable:
    """Everything one generation knows about supported platforms."""

    generation: TableGeneration
    branches: tuple[PlatformBranch, ...]
    windows: WindowsBranch
    tiers: frozenset[SensorTier]
    extra_prerequisites: tuple[str, ...] = field(default_factory=tuple)

    def branches_matched_on(self, match_on: str) -> list[PlatformBranch]:
        return [b for b in self.branches if b.match_on == match_on]

    def offers(self, tier: SensorTier) -> bool:
        """Check whether this generation ships an artifact for a tier."""
        return tier in self.tiers

    def prerequisites(self, lsb: str, dmidecode: str, flock: str) -> list[str]:
        """OS packages the installer needs, in install order."""
        return [
            *self.extra_prerequisites,
            lsb,
            "openssl",
            "curl",
            "rpm",
            dmidecode,
            "cpio",
            "sed",
            "gawk",
            flock,
        ]


REPO_REFRESH_COMMANDS: dict[PackageManager, list[str]] = {
    PackageManager.APT: ["apt-get", "update"],
    PackageManager.YUM: ["yum", "-y", "update"],
    PackageManager.ZYPPER: ["zypper", "refresh"],
}

WINDOWS_FAMILY = "windows"


def _ubuntu(*rules: VersionRule) -> PlatformBranch:
    return PlatformBranch(
        name="ubuntu",
        match="ubuntu",
        match_on="distribution",
        package_manager=PackageManager.APT,
        lsb_package="lsb-core",
        flock_package="coreutils",
        dmidecode_package="dmidecode",
        rules=rules,
    )


def _rhel(*rules: VersionRule) -> PlatformBranch:
    return PlatformBranch(
        name="rhel",
        match="rhel",
        match_on="family",
        package_manager=PackageManager.YUM,
        lsb_package="redhat-lsb",
        flock_package="util-linux",
        dmidecode_package="dmidecode",
        rules=rules,
    )


def _suse(*rules: VersionRule) -> PlatformBranch:
    return PlatformBranch(
        name="suse",
        match="suse",
        match_on="family",
        package_manager=PackageManager.ZYPPER,
        lsb_package="lsb-release",
        flock_package="kernel-default",
        dmidecode_package="dmidecode",
        rules=rules,
    )


# SUSE rows are identical across generations, including the legacy flag that
# 3.x has no artifact for.
_SUSE_RULES = (
    VersionRule(r"^11\.[2-4]$", "sles11", False, False, True, dmidecode_package="pmtools"),
    VersionRule(r"^12\.[0-9]+$", "sles12", False, False, True),
)

V2_TABLE = PlatformTable(
    generation=TableGeneration.V2,
    branches=(
        _ubuntu(
            VersionRule(r"12\.04", "u12", False, False, True),
            VersionRule(r"(14\.04|14\.10)", "u14", True, True, True),
        ),
        _rhel(
            VersionRule(r"^5\.[0-9]+", "el5", False, False, True),
            VersionRule(r"^6\.[0-9]+", "el6", True, True, True),
            VersionRule(r"^7\.[0-9]+", "el7", True, True, True),
        ),
        _suse(*_SUSE_RULES),
    ),
    # 2.x ships a single Windows installer with no enforcement variant
    windows=WindowsBranch(r"^6\.[0-3]", enforcement=False, deep_visibility=True),
    tiers=frozenset({SensorTier.ENFORCEMENT, SensorTier.DEEP_VISIBILITY, SensorTier.LEGACY}),
)

V3_TABLE = PlatformTable(
    generation=TableGeneration.V3,
    branches=(
        _ubuntu(
            VersionRule(r"12\.04", "u12", False, False),
            VersionRule(r"(14\.04|14\.10)", "u14", True, True),
            VersionRule(r"16\.04", "u16", True, True),
            VersionRule(r"18\.04", "u18", True, True),
        ),
        _rhel(
            VersionRule(r"^5\.[0-9]+", "el5", False, True),
            VersionRule(r"^6\.[0-9]+", "el6", True, True),
            VersionRule(r"^7\.[0-9]+", "el7", True, True),
            VersionRule(r"^8\.[0-9]+", "el8", True, True),
        ),
        _suse(*_SUSE_RULES),
    ),
    windows=WindowsBranch(r"^6\.[0-3]", enforcement=True, deep_visibility=True),
    tiers=frozenset({SensorTier.ENFORCEMENT, SensorTier.DEEP_VISIBILITY}),
    extra_prerequisites=("unzip",),
)

TABLES: dict[TableGeneration, PlatformTable] = {
    TableGeneration.V2: V2_TABLE,
    TableGeneration.V3: V3_TABLE,
}


def get_table(generation: TableGeneration) -> PlatformTable:
    """Get the platform table for a generation."""
    return TABLES[generation]


def iter_rules(generation: TableGeneration):
    """Yield (branch, rule) pairs for a generation in evaluation order."""
    table = get_table(generation)
    for branch in table.branches:
        for rule in branch.rules:
            yield branch, rule
