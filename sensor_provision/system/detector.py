"""Host fact detection for Linux and Windows."""

import logging
import platform
import re
import socket
from pathlib import Path

import psutil

from sensor_provision.host import HostDescriptor

logger = logging.getLogger(__name__)

ETC_DIR = Path("/etc")
OS_RELEASE_PATHS = [ETC_DIR / "os-release", Path("/usr/lib/os-release")]

# Checked in order; centos-release is more specific than redhat-release
REDHAT_RELEASE_FILES = ["centos-release", "redhat-release"]
SUSE_RELEASE_FILE = "SuSE-release"

REDHAT_RELEASE_RE = re.compile(r"^(?P<name>.*?)\s+release\s+(?P<version>\d+(?:\.\d+)*)", re.MULTILINE)

# Substrings of the release name and the distribution they identify
REDHAT_DISTRIBUTIONS: list[tuple[str, str]] = [
    ("centos", "centos"),
    ("red hat", "redhat"),
    ("oracle", "oracle"),
    ("scientific", "scientific"),
]

# os-release IDs grouped into the families the platform tables key on
FAMILY_BY_ID: dict[str, str] = {
    "rhel": "rhel",
    "centos": "rhel",
    "redhat": "rhel",
    "ol": "rhel",
    "oracle": "rhel",
    "scientific": "rhel",
    "amzn": "rhel",
    "almalinux": "rhel",
    "rocky": "rhel",
    "sles": "suse",
    "sled": "suse",
    "sles_sap": "suse",
    "opensuse": "suse",
    "opensuse-leap": "suse",
    "suse": "suse",
    "ubuntu": "debian",
    "debian": "debian",
    "linuxmint": "debian",
}

# platform.machine() spellings of x86_64
ARCH_ALIASES: dict[str, str] = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "x86_64": "x86_64",
}


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release KEY=value lines, stripping quotes."""
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        fields[key.strip()] = value.strip().strip("\"'")
    return fields


def family_for(distribution_id: str, id_like: str = "") -> str:
    """Map an os-release ID (and ID_LIKE) to a platform family."""
    distribution_id = distribution_id.lower()
    if distribution_id in FAMILY_BY_ID:
        return FAMILY_BY_ID[distribution_id]

    for candidate in id_like.lower().split():
        if candidate in FAMILY_BY_ID:
            return FAMILY_BY_ID[candidate]

    return distribution_id


def normalize_architecture(machine: str) -> str:
    return ARCH_ALIASES.get(machine.lower(), machine)


def parse_redhat_release(text: str) -> tuple[str, str] | None:
    """
    Parse a redhat-release style line into (distribution, version).

    "CentOS Linux release 7.4.1708 (Core)" gives ("centos", "7.4.1708").
    """
    match = REDHAT_RELEASE_RE.search(text)
    if match is None:
        return None

    name = match.group("name").lower()
    for marker, distribution in REDHAT_DISTRIBUTIONS:
        if marker in name:
            return distribution, match.group("version")
    return "rhel", match.group("version")


def parse_suse_release(text: str) -> tuple[str, str] | None:
    """Parse SuSE-release VERSION/PATCHLEVEL into ("suse", "11.3")."""
    fields = parse_os_release(text)
    version = fields.get("VERSION")
    if not version:
        return None
    patchlevel = fields.get("PATCHLEVEL")
    return "suse", f"{version}.{patchlevel}" if patchlevel else version


class HostDetector:
    """
    Detects the facts the platform resolver needs.

    os-release gives the distribution and family. Its VERSION_ID is only a
    major version on CentOS 7/8 and the file is absent on RHEL 5/6, so the
    RHEL and SUSE release files are read for the full version, and used on
    their own when os-release is missing.
    """

    def __init__(
        self,
        os_release_paths: list[Path] | None = None,
        release_dir: Path = ETC_DIR,
    ) -> None:
        self.os_release_paths = os_release_paths or OS_RELEASE_PATHS
        self.release_dir = release_dir

    def detect(self) -> HostDescriptor:
        """Detect the current host."""
        if psutil.WINDOWS:
            distribution, family, version = "windows", "windows", platform.version()
        else:
            distribution, family, version = self._detect_linux()

        return HostDescriptor(
            architecture=normalize_architecture(platform.machine()),
            distribution=distribution,
            distribution_family=family,
            distribution_version=version,
            hostname=socket.gethostname(),
            cpu_count=psutil.cpu_count(),
            total_memory_gb=psutil.virtual_memory().total / (1024**3),
        )

    def _detect_linux(self) -> tuple[str, str, str]:
        """Read distribution, family and version from the release files."""
        fields = self._read_os_release()
        distribution = fields.get("ID", "").lower()
        # SLES reports ID=sles; the tables know it by family only
        family = family_for(distribution, fields.get("ID_LIKE", "")) if distribution else ""
        version = fields.get("VERSION_ID", "")

        if not fields or family == "rhel":
            release = self._read_redhat_release()
            if release is not None:
                distribution = distribution or release[0]
                family, version = "rhel", release[1]

        if not fields or family == "suse":
            release = self._read_suse_release()
            if release is not None:
                distribution = distribution or release[0]
                family, version = "suse", release[1]

        if not distribution:
            logger.warning("No os-release or release file found, distribution unknown")
        return distribution, family, version

    def _read_os_release(self) -> dict[str, str]:
        for path in self.os_release_paths:
            try:
                return parse_os_release(path.read_text())
            except OSError as e:
                logger.debug(f"Cannot read {path}: {e}")
        return {}

    def _read_redhat_release(self) -> tuple[str, str] | None:
        for name in REDHAT_RELEASE_FILES:
            path = self.release_dir / name
            try:
                release = parse_redhat_release(path.read_text())
            except OSError as e:
                logger.debug(f"Cannot read {path}: {e}")
                continue
            if release is not None:
                return release
            logger.warning(f"Unrecognized release line in {path}")
        return None

    def _read_suse_release(self) -> tuple[str, str] | None:
        path = self.release_dir / SUSE_RELEASE_FILE
        try:
            return parse_suse_release(path.read_text())
        except OSError as e:
            logger.debug(f"Cannot read {path}: {e}")
            return None
