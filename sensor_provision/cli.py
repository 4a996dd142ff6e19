"""Command-line interface for sensor-provision."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from sensor_provision.config import Config
from sensor_provision.host import HostDescriptor, TableGeneration, TargetMode
from sensor_provision.platforms.resolver import (
    ClassificationError,
    PlatformProfile,
    PlatformResolver,
)
from sensor_provision.platforms.selector import ArtifactSelector, SelectionError, SensorSelection
from sensor_provision.platforms.tables import TABLES, get_table
from sensor_provision.provision.provisioner import ProvisionError, provision
from sensor_provision.system.detector import HostDetector

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def _apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply per-run command-line overrides to a loaded config."""
    if getattr(args, "generation", None):
        config.generation = TableGeneration(args.generation)
    if getattr(args, "mode", None):
        config.target_mode = TargetMode(args.mode)
    if getattr(args, "source_dir", None):
        config.source_dir = Path(args.source_dir)
    return config


def _profile_dict(profile: PlatformProfile) -> dict[str, Any]:
    return {
        "os": profile.os.value,
        "generation": profile.generation.value,
        "flavor": profile.flavor,
        "supports_enforcement": profile.supports_enforcement,
        "supports_deep_visibility": profile.supports_deep_visibility,
        "supports_legacy_deep_visibility": profile.supports_legacy_deep_visibility,
        "package_manager": profile.package_manager.value if profile.package_manager else None,
        "prerequisite_packages": profile.prerequisite_packages,
    }


def _selection_dict(selection: SensorSelection) -> dict[str, Any]:
    return {
        "artifact_name": selection.artifact_name,
        "tier": selection.tier.value,
        "requested": selection.requested.value,
        "downgraded": selection.downgraded,
    }


def _classify(host: HostDescriptor, config: Config) -> tuple[PlatformProfile, SensorSelection]:
    profile = PlatformResolver(config.generation).resolve(host)
    selection = ArtifactSelector(config.deployment).select(profile, config.target_mode)
    return profile, selection


def _print_result(profile: PlatformProfile, selection: SensorSelection) -> None:
    print(f"OS:            {profile.os.value}")
    print(f"Table:         {profile.generation.value}")
    if profile.flavor:
        print(f"Flavor:        {profile.flavor}")
    print(f"Enforcement:   {'Yes' if profile.supports_enforcement else 'No'}")
    print(f"Deep Vis:      {'Yes' if profile.supports_deep_visibility else 'No'}")
    print(f"Legacy:        {'Yes' if profile.supports_legacy_deep_visibility else 'No'}")
    if profile.prerequisite_packages:
        print(f"Prerequisites: {', '.join(profile.prerequisite_packages)}")
    print(f"\nArtifact: {selection.artifact_name}")
    print(f"  Tier: {selection.tier.value}")
    if selection.downgraded:
        print(f"  Requested {selection.requested.value}, host supports less")


def cmd_host_info(args: argparse.Namespace) -> int:
    """Handle the host-info command."""
    config = _apply_overrides(Config.load(), args)
    host = HostDetector().detect()

    data: dict[str, Any] = {
        "architecture": host.architecture,
        "distribution": host.distribution,
        "distribution_family": host.distribution_family,
        "distribution_version": host.distribution_version,
        "hostname": host.hostname,
        "cpu_count": host.cpu_count,
        "total_memory_gb": round(host.total_memory_gb, 2) if host.total_memory_gb else None,
    }

    try:
        profile, selection = _classify(host, config)
    except (ClassificationError, SelectionError) as e:
        if args.json:
            data["error"] = str(e)
            print(json.dumps(data, indent=2))
        else:
            print(f"Host: {host}")
            print(f"Not supported: {e}", file=sys.stderr)
        return 1

    if args.json:
        data["profile"] = _profile_dict(profile)
        data["selection"] = _selection_dict(selection)
        print(json.dumps(data, indent=2))
        return 0

    print(f"Host:          {host}")
    if host.hostname:
        print(f"Hostname:      {host.hostname}")
    if host.cpu_count:
        print(f"CPUs:          {host.cpu_count}")
    if host.total_memory_gb:
        print(f"Memory:        {host.total_memory_gb:.1f} GB")
    _print_result(profile, selection)
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle the resolve command - classify explicit host facts."""
    config = _apply_overrides(Config.load(), args)
    host = HostDescriptor(
        architecture=args.arch,
        distribution=args.distribution or "",
        distribution_family=args.family or "",
        distribution_version=args.version,
    )

    try:
        profile, selection = _classify(host, config)
    except (ClassificationError, SelectionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        data = {"profile": _profile_dict(profile), "selection": _selection_dict(selection)}
        print(json.dumps(data, indent=2))
    else:
        _print_result(profile, selection)
    return 0


def cmd_tables(args: argparse.Namespace) -> int:
    """Handle the tables command - list supported platforms."""
    generations = [TableGeneration(args.generation)] if args.generation else list(TABLES)

    if args.json:
        data = []
        for generation in generations:
            table = get_table(generation)
            for branch in table.branches:
                for rule in branch.rules:
                    data.append({
                        "generation": generation.value,
                        "branch": branch.name,
                        "version_pattern": rule.pattern,
                        "flavor": rule.flavor,
                        "enforcement": rule.enforcement,
                        "deep_visibility": rule.deep_visibility,
                        "legacy_deep_visibility": rule.legacy_deep_visibility,
                    })
            data.append({
                "generation": generation.value,
                "branch": "windows",
                "version_pattern": table.windows.version_pattern,
                "flavor": None,
                "enforcement": table.windows.enforcement,
                "deep_visibility": table.windows.deep_visibility,
                "legacy_deep_visibility": table.windows.legacy_deep_visibility,
            })
        print(json.dumps(data, indent=2))
        return 0

    def flag(value: bool) -> str:
        return "✓" if value else "-"

    for generation in generations:
        table = get_table(generation)
        print(f"Table {generation.value}")
        print("=" * 60)
        print(f"{'Branch':<10}{'Version':<20}{'Flavor':<10}{'Enf':<5}{'DV':<5}{'Legacy':<6}")
        for branch in table.branches:
            for rule in branch.rules:
                print(
                    f"{branch.name:<10}{rule.pattern:<20}{rule.flavor:<10}"
                    f"{flag(rule.enforcement):<5}{flag(rule.deep_visibility):<5}"
                    f"{flag(rule.legacy_deep_visibility):<6}"
                )
        windows = table.windows
        print(
            f"{'windows':<10}{windows.version_pattern:<20}{'-':<10}"
            f"{flag(windows.enforcement):<5}{flag(windows.deep_visibility):<5}"
            f"{flag(windows.legacy_deep_visibility):<6}"
        )
        print(f"Tiers: {', '.join(sorted(t.value for t in table.tiers))}")
        print()

    return 0


def cmd_install(args: argparse.Namespace) -> int:
    """Handle the install command - full provisioning run."""
    config = _apply_overrides(Config.load(), args)
    host = HostDetector().detect()

    try:
        _, selection = _classify(host, config)
        steps = provision(selection, config, dry_run=args.dry_run)
    except (ClassificationError, SelectionError) as e:
        logger.error(f"{host}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ProvisionError as e:
        logger.error(f"Provisioning failed: {e}")
        print(f"Provisioning failed: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        for step in steps:
            print(step)
    else:
        print(f"Installed {selection.artifact_name} ({selection.tier.value})")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the config command."""
    from sensor_provision.config import CONFIG_PATHS

    # Overrides apply to every action, so --init can write a 2.x config
    config = _apply_overrides(Config.load(), args)

    if args.validate:
        issues = config.validate()
        if issues:
            print("Configuration issues:")
            for issue in issues:
                print(f"  - {issue}")
            return 1
        print("Configuration is valid")
        return 0

    if args.show:
        print(json.dumps(config.to_dict(), indent=2))
        return 0

    if args.init:
        config_path = CONFIG_PATHS[0]
        if config_path.exists() and not args.force:
            print(f"Config already exists at {config_path}")
            print("Use --force to overwrite")
            return 1
        config.save(config_path)
        print(f"Config initialized at {config_path}")
        return 0

    for path in CONFIG_PATHS:
        if path.exists():
            print(f"Config loaded from: {path}")
            return 0

    print("No config file found, using defaults")
    print(f"Create one at: {CONFIG_PATHS[0]}")
    return 0


def _add_selection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--generation",
        choices=[g.value for g in TableGeneration],
        help="Platform table generation (default: from config)",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in TargetMode],
        help="Requested sensor mode (default: from config)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="sensor-provision",
        description="Resolve host platform and install the matching security sensor",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # host-info command
    host_parser = subparsers.add_parser(
        "host-info",
        help="Show detected host facts and the sensor it would get",
    )
    _add_selection_args(host_parser)
    host_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    # resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Classify explicit host facts without touching this host",
    )
    _add_selection_args(resolve_parser)
    resolve_parser.add_argument("--distribution", help="Distribution name (e.g. ubuntu)")
    resolve_parser.add_argument("--family", help="Distribution family (e.g. rhel, suse, windows)")
    resolve_parser.add_argument("--version", required=True, help="Distribution version")
    resolve_parser.add_argument("--arch", default="x86_64", help="CPU architecture")
    resolve_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    # tables command
    tables_parser = subparsers.add_parser(
        "tables",
        help="List supported platforms per table generation",
    )
    tables_parser.add_argument(
        "--generation",
        choices=[g.value for g in TableGeneration],
        help="Only show one generation",
    )
    tables_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    # install command
    install_parser = subparsers.add_parser(
        "install",
        help="Install prerequisites and the sensor on this host",
    )
    _add_selection_args(install_parser)
    install_parser.add_argument(
        "--source-dir",
        help="Directory holding installer artifacts",
    )
    install_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the plan without executing it",
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
    )
    config_parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Initialize default configuration file",
    )
    config_parser.add_argument(
        "--force",
        action="store_true",
        help="Force overwrite existing config",
    )
    _add_selection_args(config_parser)

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "host-info": cmd_host_info,
        "resolve": cmd_resolve,
        "tables": cmd_tables,
        "install": cmd_install,
        "config": cmd_config,
    }

    cmd_func = commands.get(args.command)
    if cmd_func is None:
        parser.print_help()
        return 1

    return cmd_func(args)


if __name__ == "__main__":
    sys.exit(main())
