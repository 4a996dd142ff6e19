"""Prerequisite installation, artifact staging and installer execution."""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath

from sensor_provision.config import Config
from sensor_provision.host import OSKind, PackageManager, TableGeneration
from sensor_provision.platforms.selector import SensorSelection
from sensor_provision.platforms.tables import REPO_REFRESH_COMMANDS

logger = logging.getLogger(__name__)

WINPCAP_INSTALLER = "winpcap-silence.exe"
WINDOWS_SUPPORT_FILES = ["sensor_config", "site.cfg"]
WINDOWS_CA_CERT = "ca.cert"
WINDOWS_SILENT_FLAG = "/S"
POWERSHELL_SKIP_ENFORCEMENT_CHECK = "-skipEnforcementCheck"
SCRIPT_MODE = 0o755


class ProvisionError(Exception):
    """A provisioning step failed."""


class StepKind:
    """Kinds of provisioning steps."""

    COMMAND = "command"
    MKDIR = "mkdir"
    STAGE = "stage"


@dataclass(frozen=True)
class ProvisionStep:
    """One action in a provisioning plan."""

    description: str
    kind: str
    argv: tuple[str, ...] = ()
    source: Path | None = None
    destination: str | None = None
    mode: int | None = None

    def __str__(self) -> str:
        if self.kind == StepKind.COMMAND:
            return f"{self.description}: {_fmt_argv(self.argv)}"
        if self.kind == StepKind.STAGE:
            return f"{self.description}: {self.source} -> {self.destination}"
        return f"{self.description}: {self.destination}"


def _fmt_argv(argv) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def package_upgrade_argv(manager: PackageManager, package: str) -> list[str]:
    """Command that installs a package or upgrades it to the latest version."""
    if manager == PackageManager.APT:
        return ["apt-get", "install", "-y", package]
    if manager == PackageManager.YUM:
        return ["yum", "-y", "install", package]
    return ["zypper", "--non-interactive", "install", package]


class Provisioner:
    """
    Turns a sensor selection into an ordered plan and runs it.

    Planning is pure; only run() touches the host.
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()

    def plan(self, selection: SensorSelection) -> list[ProvisionStep]:
        """Build the provisioning steps for a selection."""
        if selection.profile.os == OSKind.WINDOWS:
            if selection.profile.generation == TableGeneration.V2:
                return self._plan_windows_exe(selection)
            return self._plan_windows_script(selection)
        return self._plan_linux(selection)

    def _plan_linux(self, selection: SensorSelection) -> list[ProvisionStep]:
        profile = selection.profile
        steps: list[ProvisionStep] = []

        if self.config.refresh_repos:
            steps.append(
                ProvisionStep(
                    "update_repo",
                    StepKind.COMMAND,
                    argv=tuple(REPO_REFRESH_COMMANDS[profile.package_manager]),
                )
            )

        for package in profile.prerequisite_packages:
            steps.append(
                ProvisionStep(
                    f"check {package}",
                    StepKind.COMMAND,
                    argv=tuple(package_upgrade_argv(profile.package_manager, package)),
                )
            )

        staged = f"{self.config.staging_dir.rstrip('/')}/{selection.artifact_name}"
        if profile.generation == TableGeneration.V2:
            steps.append(self._stage(selection.artifact_name, staged))
            steps.append(
                ProvisionStep(
                    "sensor_rpm",
                    StepKind.COMMAND,
                    argv=("rpm", "-Uvh", "--nodeps", staged),
                )
            )
        else:
            steps.append(self._stage(selection.artifact_name, staged, mode=SCRIPT_MODE))
            steps.append(ProvisionStep("sensor_install", StepKind.COMMAND, argv=(staged,)))

        return steps

    def _plan_windows_exe(self, selection: SensorSelection) -> list[ProvisionStep]:
        install_dir = PureWindowsPath(self.config.windows_install_dir)
        cert_dir = install_dir / "cert"
        winpcap = PureWindowsPath("C:\\") / WINPCAP_INSTALLER
        installer = install_dir / selection.artifact_name

        steps = [
            self._stage(WINPCAP_INSTALLER, str(winpcap)),
            ProvisionStep("create install dir", StepKind.MKDIR, destination=str(install_dir)),
            ProvisionStep("create cert dir", StepKind.MKDIR, destination=str(cert_dir)),
        ]
        steps.extend(self._stage(name, str(install_dir / name)) for name in WINDOWS_SUPPORT_FILES)
        steps.append(self._stage(WINDOWS_CA_CERT, str(cert_dir / WINDOWS_CA_CERT)))
        steps.append(self._stage(selection.artifact_name, str(installer)))
        steps.append(
            ProvisionStep("Installing WinPcap", StepKind.COMMAND, argv=(str(winpcap), WINDOWS_SILENT_FLAG))
        )
        steps.append(
            ProvisionStep("Installing Sensor", StepKind.COMMAND, argv=(str(installer), WINDOWS_SILENT_FLAG))
        )
        return steps

    def _plan_windows_script(self, selection: SensorSelection) -> list[ProvisionStep]:
        install_dir = PureWindowsPath(self.config.windows_install_dir)
        script = install_dir / selection.artifact_name
        return [
            ProvisionStep("create install dir", StepKind.MKDIR, destination=str(install_dir)),
            self._stage(selection.artifact_name, str(script)),
            ProvisionStep(
                "Installing Sensor",
                StepKind.COMMAND,
                argv=(
                    "powershell.exe",
                    "-NoProfile",
                    "-ExecutionPolicy",
                    "Bypass",
                    "-Command",
                    f". {script} {POWERSHELL_SKIP_ENFORCEMENT_CHECK}",
                ),
            ),
        ]

    def _stage(self, name: str, destination: str, mode: int | None = None) -> ProvisionStep:
        return ProvisionStep(
            f"stage {name}",
            StepKind.STAGE,
            source=self.config.source_dir / name,
            destination=destination,
            mode=mode,
        )

    def run(self, steps: list[ProvisionStep], dry_run: bool = False) -> None:
        """
        Execute a plan in order, stopping at the first failure.

        Args:
            steps: Steps from plan()
            dry_run: Log the steps without executing them

        Raises:
            ProvisionError: a command failed or a source file is missing
        """
        for step in steps:
            logger.info(f"{'DRY-RUN ' if dry_run else ''}{step}")
            if dry_run:
                continue

            if step.kind == StepKind.COMMAND:
                self._run_command(step)
            elif step.kind == StepKind.MKDIR:
                self._make_dir(step)
            elif step.kind == StepKind.STAGE:
                self._stage_file(step)
            else:
                raise ProvisionError(f"Unknown step kind: {step.kind}")

    def _run_command(self, step: ProvisionStep) -> None:
        try:
            result = subprocess.run(
                list(step.argv),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ProvisionError(f"{step.description}: cannot run {_fmt_argv(step.argv)}: {e}") from e

        if result.stdout:
            logger.debug(f"STDOUT {result.stdout.strip()}")
        if result.stderr:
            logger.debug(f"STDERR {result.stderr.strip()}")

        if result.returncode != 0:
            raise ProvisionError(
                f"{step.description} failed ({result.returncode}): "
                f"{_fmt_argv(step.argv)}\n{result.stderr}"
            )

    def _make_dir(self, step: ProvisionStep) -> None:
        try:
            os.makedirs(step.destination, exist_ok=True)
        except OSError as e:
            raise ProvisionError(f"Failed to create {step.destination}: {e}") from e

    def _stage_file(self, step: ProvisionStep) -> None:
        if step.source is None or not step.source.is_file():
            raise ProvisionError(f"Artifact not found: {step.source}")

        try:
            shutil.copyfile(step.source, step.destination)
            if step.mode is not None:
                os.chmod(step.destination, step.mode)
        except OSError as e:
            raise ProvisionError(f"Failed to stage {step.source} to {step.destination}: {e}") from e


def provision(selection: SensorSelection, config: Config | None = None, dry_run: bool = False) -> list[ProvisionStep]:
    """Plan and run provisioning for a selection; returns the executed plan."""
    provisioner = Provisioner(config)
    steps = provisioner.plan(selection)
    provisioner.run(steps, dry_run=dry_run)
    return steps
