"""Tests for platform table definitions."""

import pytest

from sensor_provision.host import PackageManager, SensorTier, TableGeneration
from sensor_provision.platforms.tables import (
    REPO_REFRESH_COMMANDS,
    TABLES,
    get_table,
    iter_rules,
)


class TestTableGeneration:
    """Tests for TableGeneration enum."""

    def test_generations_exist(self):
        assert TableGeneration.V2.value == "2.x"
        assert TableGeneration.V3.value == "3.x"

    def test_every_generation_has_a_table(self):
        for generation in TableGeneration:
            assert TABLES[generation].generation == generation


class TestTiers:
    """Tests for the tiers each generation can ship."""

    def test_v2_has_three_tiers(self):
        table = get_table(TableGeneration.V2)
        assert table.offers(SensorTier.ENFORCEMENT)
        assert table.offers(SensorTier.DEEP_VISIBILITY)
        assert table.offers(SensorTier.LEGACY)

    def test_v3_has_no_legacy_tier(self):
        table = get_table(TableGeneration.V3)
        assert table.offers(SensorTier.ENFORCEMENT)
        assert table.offers(SensorTier.DEEP_VISIBILITY)
        assert not table.offers(SensorTier.LEGACY)


class TestFlavors:
    """Tests for flavors listed per generation."""

    def test_v2_flavors(self):
        flavors = [rule.flavor for _, rule in iter_rules(TableGeneration.V2)]
        assert flavors == ["u12", "u14", "el5", "el6", "el7", "sles11", "sles12"]

    def test_v3_flavors(self):
        flavors = [rule.flavor for _, rule in iter_rules(TableGeneration.V3)]
        assert flavors == [
            "u12", "u14", "u16", "u18",
            "el5", "el6", "el7", "el8",
            "sles11", "sles12",
        ]

    def test_el5_capabilities_differ_between_generations(self):
        v2 = {rule.flavor: rule for _, rule in iter_rules(TableGeneration.V2)}
        v3 = {rule.flavor: rule for _, rule in iter_rules(TableGeneration.V3)}

        assert not v2["el5"].deep_visibility
        assert v2["el5"].legacy_deep_visibility
        assert v3["el5"].deep_visibility
        assert not v3["el5"].legacy_deep_visibility

    def test_sles11_uses_pmtools(self):
        for generation in TableGeneration:
            rules = {rule.flavor: rule for _, rule in iter_rules(generation)}
            assert rules["sles11"].dmidecode_package == "pmtools"
            assert rules["sles12"].dmidecode_package is None


class TestBranches:
    """Tests for branch package metadata."""

    @pytest.mark.parametrize("generation", list(TableGeneration))
    def test_branch_packages(self, generation):
        branches = {b.name: b for b in get_table(generation).branches}

        assert branches["ubuntu"].match_on == "distribution"
        assert branches["ubuntu"].package_manager == PackageManager.APT
        assert branches["ubuntu"].lsb_package == "lsb-core"
        assert branches["ubuntu"].flock_package == "coreutils"

        assert branches["rhel"].match_on == "family"
        assert branches["rhel"].package_manager == PackageManager.YUM
        assert branches["rhel"].lsb_package == "redhat-lsb"
        assert branches["rhel"].flock_package == "util-linux"

        assert branches["suse"].match_on == "family"
        assert branches["suse"].package_manager == PackageManager.ZYPPER
        assert branches["suse"].lsb_package == "lsb-release"
        assert branches["suse"].flock_package == "kernel-default"

    def test_repo_refresh_commands(self):
        assert REPO_REFRESH_COMMANDS[PackageManager.APT] == ["apt-get", "update"]
        assert REPO_REFRESH_COMMANDS[PackageManager.YUM] == ["yum", "-y", "update"]
        assert REPO_REFRESH_COMMANDS[PackageManager.ZYPPER] == ["zypper", "refresh"]


class TestPrerequisites:
    """Tests for prerequisite package lists."""

    def test_v2_prerequisites(self):
        packages = get_table(TableGeneration.V2).prerequisites("lsb-core", "dmidecode", "coreutils")
        assert packages == [
            "lsb-core", "openssl", "curl", "rpm", "dmidecode",
            "cpio", "sed", "gawk", "coreutils",
        ]

    def test_v3_adds_unzip_first(self):
        packages = get_table(TableGeneration.V3).prerequisites("lsb-core", "dmidecode", "coreutils")
        assert packages[0] == "unzip"
        assert packages[1:] == get_table(TableGeneration.V2).prerequisites(
            "lsb-core", "dmidecode", "coreutils"
        )
