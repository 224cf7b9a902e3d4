# src/cache/fingerprint.py — v1
"""Privacy-safe Wi-Fi fingerprint keys.

A key is a SHA-256 digest over the normalized (ssid, bssid) pair only, so
it is stable across visits (signal strength and timestamps are ignored)
and cannot be reversed into the network identity.
"""

from __future__ import annotations

import hashlib
import re

from sitesense.core.models import FingerprintKey, WirelessObservation

_KEY_PREFIX = "wfp1_"
_UNKNOWN = "unknown"
_SEPARATOR = "\x1f"


def hash_observation(observation: WirelessObservation, salt: str = "") -> FingerprintKey:
    """Derive the cache key for a wireless observation.

    Args:
        observation: Raw Wi-Fi reading.
        salt: Optional per-install salt mixed into the digest.

    Returns:
        Opaque, deterministic FingerprintKey.
    """
    ssid = _normalize_ssid(observation.ssid)
    bssid = _normalize_bssid(observation.bssid)
    material = _SEPARATOR.join((salt, ssid, bssid))
    digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
    return FingerprintKey(f"{_KEY_PREFIX}{digest}")


def fingerprint_or_none(
    observation: WirelessObservation | None, salt: str = ""
) -> FingerprintKey | None:
    """Hash an observation when one exists and identifies a network."""
    if observation is None:
        return None
    if not (observation.ssid or observation.bssid):
        return None
    return hash_observation(observation, salt=salt)


def is_fingerprint_key(value: str) -> bool:
    """True when ``value`` has the shape of a key produced by this module."""
    return bool(re.fullmatch(rf"{_KEY_PREFIX}[0-9a-f]{{64}}", value))


def _normalize_ssid(ssid: str | None) -> str:
    if ssid is None or not ssid.strip():
        return _UNKNOWN
    return re.sub(r"\s+", "_", ssid.strip()).lower()


def _normalize_bssid(bssid: str | None) -> str:
    if bssid is None or not bssid.strip():
        return _UNKNOWN
    return re.sub(r"[-.\s]", ":", bssid.strip()).lower()
