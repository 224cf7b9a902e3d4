# tests/unit/test_main.py — v1
"""Tests for main.py CLI."""

from __future__ import annotations

import json
import logging

import pytest

from sitesense.logging.logger import ROOT_LOGGER
from sitesense.main import _build_parser, main
from sitesense.version import __version__


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """Run from an empty directory so no stray .env is read."""
    monkeypatch.chdir(tmp_path)
    yield
    logging.getLogger(ROOT_LOGGER).handlers.clear()


@pytest.fixture
def sites_file(tmp_path):
    path = tmp_path / "sites.json"
    path.write_text(
        json.dumps(
            [
                {"site_id": "hq", "name": "HQ", "latitude": 48.8566, "longitude": 2.3522},
                {"site_id": "annex", "name": "Annex", "latitude": 48.8575, "longitude": 2.3522},
            ]
        ),
        encoding="utf-8",
    )
    return path


def _detect_args(tmp_path, sites_file, *extra: str) -> list[str]:
    return [
        "--cache-root", str(tmp_path / "cache"),
        "detect", "--sites", str(sites_file),
        "--lat", "48.8566", "--lon", "2.3522", *extra,
    ]


class TestParser:
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_detect_defaults(self, tmp_path):
        args = _build_parser().parse_args(["detect", "--sites", "s.json"])
        assert args.accuracy == 10.0
        assert args.lat is None
        assert args.no_retry is False

    def test_cache_requires_subcommand(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["cache"])


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_detect_auto_confirmed(self, tmp_path, sites_file, capsys):
        assert main(_detect_args(tmp_path, sites_file)) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["outcome"]["state"] == "auto_confirmed"
        assert payload["outcome"]["suggested_site"]["site_id"] == "hq"
        assert payload["outcome"]["result"]["method"] == "gps_only"

    def test_detect_with_confirm_prints_record(self, tmp_path, sites_file, capsys):
        code = main(_detect_args(tmp_path, sites_file, "--ssid", "HQ Guest", "--confirm", "annex"))
        assert code == 0
        record = json.loads(capsys.readouterr().out)["record"]
        assert record["siteId"] == "annex"
        assert record["detectionMethod"] == "manual"
        assert record["userConfirmed"] is True
        assert record["wifiFingerprint"].startswith("wfp1_")

    def test_detect_missing_sites_file(self, tmp_path):
        args = ["detect", "--sites", str(tmp_path / "nope.json"), "--lat", "1", "--lon", "1"]
        assert main(args) == 1

    def test_detect_lat_without_lon(self, sites_file):
        assert main(["detect", "--sites", str(sites_file), "--lat", "1"]) == 1

    def test_configuration_error(self, monkeypatch, sites_file):
        monkeypatch.setenv("HIGH_CONFIDENCE_RADIUS_M", "900")
        assert main(["detect", "--sites", str(sites_file), "--lat", "1", "--lon", "1"]) == 2


class TestCacheCommands:
    def test_stats_and_clear(self, tmp_path, sites_file, capsys):
        cache_root = ["--cache-root", str(tmp_path / "cache")]
        assert main(_detect_args(tmp_path, sites_file, "--ssid", "HQ Guest")) == 0
        capsys.readouterr()

        assert main([*cache_root, "cache", "stats"]) == 0
        assert "Entries:  1/100" in capsys.readouterr().out

        assert main([*cache_root, "cache", "clear"]) == 0
        assert "cleared" in capsys.readouterr().out

        assert main([*cache_root, "cache", "stats"]) == 0
        assert "Entries:  0/100" in capsys.readouterr().out
