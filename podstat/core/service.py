"""Service layer used by CLI and the public API."""

from __future__ import annotations

import asyncio
import importlib.util
import re
import time

from podstat.core.errors import LayoutSelectionError, PayloadFormatError
from podstat.core.model import (
    APPLE_MANUFACTURER_ID,
    AdvertisementReport,
    DeviceStatus,
    LayoutProfile,
    ModelDescriptor,
    ScanConfig,
    ScanOutcome,
)
from podstat.core.profile_loader import load_profiles
from podstat.core.scan import ScanController, build_pipeline, match_report
from podstat.transports.base import AdvertisementSource
from podstat.transports.bleak_scanner import BleakAdvertisementSource

_HEX_SEPARATORS_RE = re.compile(r"[\s:\-]")


class StatusService:
    def __init__(
        self,
        *,
        source: AdvertisementSource | None = None,
        adapter: str | None = None,
    ) -> None:
        loaded = load_profiles()
        self.profiles = loaded.profiles
        self.load_warnings = loaded.warnings
        self.runtime_warnings = _runtime_warnings() if source is None else ()
        self.source = source or BleakAdvertisementSource(adapter=adapter)

    def list_profiles(self) -> list[LayoutProfile]:
        return sorted(self.profiles.values(), key=lambda p: (p.priority, p.id))

    def select_profiles(self, layout_id: str | None = None) -> list[LayoutProfile]:
        if layout_id is None:
            return self.list_profiles()
        profile = self.profiles.get(layout_id)
        if profile is None:
            available = ", ".join(p.id for p in self.list_profiles())
            raise LayoutSelectionError(f"Unknown layout '{layout_id}'. Available: {available}")
        return [profile]

    def model_catalog(self, layout_id: str | None = None) -> dict[str, tuple[ModelDescriptor, ...]]:
        catalog: dict[str, tuple[ModelDescriptor, ...]] = {}
        for profile in self.select_profiles(layout_id):
            catalog[profile.id] = tuple(profile.models[code] for code in sorted(profile.models))
        return catalog

    async def scan_async(
        self,
        *,
        timeout_s: float | None = None,
        interval_s: float | None = None,
        layout_id: str | None = None,
    ) -> ScanOutcome:
        defaults = ScanConfig()
        config = ScanConfig(
            max_duration_s=defaults.max_duration_s if timeout_s is None else timeout_s,
            poll_interval_s=defaults.poll_interval_s if interval_s is None else interval_s,
        )
        controller = ScanController(self.source, self.select_profiles(layout_id), config)
        return await controller.run()

    def scan(
        self,
        *,
        timeout_s: float | None = None,
        interval_s: float | None = None,
        layout_id: str | None = None,
    ) -> ScanOutcome:
        return asyncio.run(
            self.scan_async(timeout_s=timeout_s, interval_s=interval_s, layout_id=layout_id)
        )

    def decode_payload(
        self,
        payload: bytes | str,
        *,
        manufacturer_id: int = APPLE_MANUFACTURER_ID,
        layout_id: str | None = None,
    ) -> DeviceStatus | None:
        """Run a captured manufacturer payload through the scan pipeline offline."""
        if isinstance(payload, str):
            payload = parse_hex_payload(payload)
        report = AdvertisementReport(
            device_id="<offline>",
            manufacturer_id=manufacturer_id,
            payload=payload,
            observed_at=time.monotonic(),
        )
        return match_report(report, build_pipeline(self.select_profiles(layout_id)))


def parse_hex_payload(text: str) -> bytes:
    normalized = _HEX_SEPARATORS_RE.sub("", text.strip().lower())
    if normalized.startswith("0x"):
        normalized = normalized[2:]
    if not normalized:
        raise PayloadFormatError("Payload must not be empty")
    try:
        return bytes.fromhex(normalized)
    except ValueError as exc:
        raise PayloadFormatError(f"Payload is not valid hex: {text!r}") from exc


def _runtime_warnings() -> tuple[str, ...]:
    warnings: list[str] = []
    if importlib.util.find_spec("bleak") is None:
        warnings.append("Python package 'bleak' is not installed; BLE scanning will fail.")
    return tuple(warnings)
