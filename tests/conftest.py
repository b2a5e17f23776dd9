from __future__ import annotations

import pytest

from podstat.core.model import AdvertisementReport

AIRPODS_PRO = b"\x0e\x20"
AIRPODS_MAX = b"\x0a\x20"


def proximity_payload(
    model: bytes = AIRPODS_PRO,
    *,
    status: int = 0x00,
    pods: int = 0xA9,
    charging_case: int = 0x04,
) -> bytes:
    payload = bytearray(27)
    payload[0:3] = b"\x07\x19\x01"
    payload[3:5] = model
    payload[5] = status
    payload[6] = pods
    payload[7] = charging_case
    return bytes(payload)


def legacy_payload(
    model: int = 0x0E,
    *,
    orientation: int = 0x02,
    left: int = 0x08,
    right: int = 0x05,
    charging: int = 0x00,
    case: int = 0x03,
) -> bytes:
    payload = bytearray(27)
    payload[3:5] = b"\xff\xff"
    payload[7] = model
    payload[10] = orientation
    payload[12] = left
    payload[13] = right
    payload[14] = charging
    payload[15] = case
    return bytes(payload)


def report(
    payload: bytes,
    *,
    manufacturer_id: int = 0x004C,
    device_id: str = "AA:BB:CC:DD:EE:FF",
    observed_at: float = 0.0,
) -> AdvertisementReport:
    return AdvertisementReport(
        device_id=device_id,
        manufacturer_id=manufacturer_id,
        payload=payload,
        observed_at=observed_at,
    )


@pytest.fixture(autouse=True)
def _isolated_profile_dirs(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
