"""Tests for the command-line interface."""

import json

import pytest

from sensor_provision import cli
from sensor_provision import config as config_module
from sensor_provision.host import HostDescriptor


@pytest.fixture(autouse=True)
def no_user_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_PATHS", [tmp_path / "config.json"])


@pytest.fixture
def detected_host(monkeypatch):
    def use(host):
        monkeypatch.setattr(cli.HostDetector, "detect", lambda self: host)

    return use


class TestResolve:
    """Tests for the resolve command."""

    def test_resolve_json(self, capsys):
        code = cli.main([
            "resolve", "--distribution", "ubuntu", "--version", "14.04",
            "--generation", "2.x", "--json",
        ])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["profile"]["flavor"] == "u14"
        assert data["selection"]["artifact_name"] == (
            "tet-sensor-2.0.1.34-1.u14-marla.enforcer.x86_64.rpm"
        )

    def test_resolve_text(self, capsys):
        code = cli.main(["resolve", "--family", "rhel", "--version", "5.3"])
        out = capsys.readouterr().out

        assert code == 0
        assert "el5" in out
        assert "tetration_installer_sensor_linux.sh" in out

    def test_unsupported_architecture(self, capsys):
        code = cli.main(["resolve", "--distribution", "ubuntu", "--version", "18.04", "--arch", "arm64"])

        assert code == 1
        assert "x86_64" in capsys.readouterr().err

    def test_no_compatible_variant(self, capsys):
        code = cli.main(["resolve", "--family", "suse", "--version", "12.1"])

        assert code == 1
        assert "unable to find a supported sensor/enforcer combination" in capsys.readouterr().err


class TestTables:
    """Tests for the tables command."""

    def test_tables_json(self, capsys):
        code = cli.main(["tables", "--generation", "3.x", "--json"])
        rows = json.loads(capsys.readouterr().out)

        assert code == 0
        assert {row["flavor"] for row in rows} >= {"u16", "u18", "el8"}
        assert all(row["generation"] == "3.x" for row in rows)

    def test_tables_text(self, capsys):
        code = cli.main(["tables"])
        out = capsys.readouterr().out

        assert code == 0
        assert "Table 2.x" in out
        assert "Table 3.x" in out


class TestHostInfo:
    """Tests for the host-info command."""

    def test_supported_host(self, capsys, detected_host):
        detected_host(HostDescriptor("x86_64", "centos", "rhel", "7.9", hostname="web1"))
        code = cli.main(["host-info", "--json"])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["hostname"] == "web1"
        assert data["profile"]["flavor"] == "el7"

    def test_unsupported_host(self, capsys, detected_host):
        detected_host(HostDescriptor("x86_64", "fedora", "fedora", "39"))
        code = cli.main(["host-info", "--json"])
        data = json.loads(capsys.readouterr().out)

        assert code == 1
        assert "not supported" in data["error"]


class TestInstall:
    """Tests for the install command."""

    def test_dry_run(self, capsys, detected_host, tmp_path):
        detected_host(HostDescriptor("x86_64", "ubuntu", "debian", "18.04"))
        code = cli.main(["install", "--dry-run", "--source-dir", str(tmp_path)])
        out = capsys.readouterr().out

        assert code == 0
        assert "apt-get update" in out
        assert "/tmp/tetration_installer_enforcer_linux.sh" in out

    def test_unsupported_host(self, capsys, detected_host):
        detected_host(HostDescriptor("aarch64", "ubuntu", "debian", "18.04"))
        code = cli.main(["install", "--dry-run"])

        assert code == 1
        assert "x86_64" in capsys.readouterr().err


class TestConfigCommand:
    """Tests for the config command."""

    def test_show(self, capsys):
        code = cli.main(["config", "--show"])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["generation"] == "3.x"

    def test_init_then_refuse_overwrite(self, capsys, tmp_path):
        assert cli.main(["config", "--init"]) == 0
        assert (tmp_path / "config.json").exists()
        assert cli.main(["config", "--init"]) == 1

    def test_show_applies_overrides(self, capsys):
        code = cli.main(["config", "--show", "--generation", "2.x", "--mode", "sensor"])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["generation"] == "2.x"
        assert data["target_mode"] == "sensor"

    def test_init_writes_overrides(self, tmp_path):
        assert cli.main(["config", "--init", "--generation", "2.x"]) == 0

        data = json.loads((tmp_path / "config.json").read_text())
        assert data["generation"] == "2.x"
