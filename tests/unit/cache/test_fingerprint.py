# tests/unit/cache/test_fingerprint.py — v1
"""Tests for cache/fingerprint.py."""

from __future__ import annotations

from datetime import datetime, timezone

from sitesense.cache.fingerprint import (
    fingerprint_or_none,
    hash_observation,
    is_fingerprint_key,
)
from sitesense.core.models import WirelessObservation


class TestHashObservation:
    def test_deterministic(self, office_wifi):
        assert hash_observation(office_wifi) == hash_observation(office_wifi)

    def test_ignores_signal_strength_and_time(self):
        a = WirelessObservation(ssid="Depot", bssid="aa:bb:cc:00:11:22", signal_strength=-40)
        b = WirelessObservation(
            ssid="Depot",
            bssid="aa:bb:cc:00:11:22",
            signal_strength=-85,
            observed_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
        )
        assert hash_observation(a) == hash_observation(b)

    def test_normalizes_case_and_separators(self):
        a = WirelessObservation(ssid="  Depot  North ", bssid="AA-BB-CC-00-11-22")
        b = WirelessObservation(ssid="depot north", bssid="aa:bb:cc:00:11:22")
        assert hash_observation(a) == hash_observation(b)

    def test_different_networks_differ(self):
        a = WirelessObservation(ssid="Depot", bssid="aa:bb:cc:00:11:22")
        b = WirelessObservation(ssid="Depot", bssid="aa:bb:cc:00:11:23")
        assert hash_observation(a) != hash_observation(b)

    def test_salt_changes_key(self, office_wifi):
        assert hash_observation(office_wifi) != hash_observation(office_wifi, salt="install-1")

    def test_key_does_not_leak_identifiers(self, office_wifi):
        key = hash_observation(office_wifi)
        assert "office" not in key.lower()
        assert "aa:bb" not in key.lower()
        assert is_fingerprint_key(key)

    def test_missing_parts_hash_as_unknown(self):
        a = WirelessObservation(ssid="Depot", bssid=None)
        b = WirelessObservation(ssid="Depot", bssid="   ")
        assert hash_observation(a) == hash_observation(b)


class TestFingerprintOrNone:
    def test_none_observation(self):
        assert fingerprint_or_none(None) is None

    def test_observation_without_identifiers(self):
        assert fingerprint_or_none(WirelessObservation(signal_strength=-60)) is None

    def test_bssid_only(self):
        key = fingerprint_or_none(WirelessObservation(bssid="aa:bb:cc:00:11:22"))
        assert key is not None and is_fingerprint_key(key)


class TestIsFingerprintKey:
    def test_rejects_raw_values(self):
        assert not is_fingerprint_key("Depot")
        assert not is_fingerprint_key("wfp1_xyz")
