"""BLE advertisement source backed by bleak's BleakScanner."""

from __future__ import annotations

import itertools
import logging
import time
from collections import deque
from typing import Any

from podstat.core.errors import AdapterUnavailableError, ScanAlreadyActiveError, ScanError
from podstat.core.model import AdvertisementReport, ScanHandle

LOGGER = logging.getLogger(__name__)

_IN_PROGRESS_MARKERS = ("inprogress", "in progress", "already")


def _is_in_progress(exc: BaseException) -> bool:
    text = f"{type(exc).__name__} {exc}".lower()
    return any(marker in text for marker in _IN_PROGRESS_MARKERS)


class BleakAdvertisementSource:
    """Queue manufacturer-data advertisements seen by a BleakScanner.

    Only one scan may be active per source; each manufacturer entry in an
    advertisement becomes its own report.
    """

    def __init__(self, *, adapter: str | None = None) -> None:
        self.adapter = adapter
        self._ids = itertools.count(1)
        self._scanner: Any = None
        self._handle: ScanHandle | None = None
        self._queue: deque[AdvertisementReport] = deque()

    def _on_advertisement(self, device: Any, advertisement: Any) -> None:
        observed_at = time.monotonic()
        for manufacturer_id, data in (advertisement.manufacturer_data or {}).items():
            self._queue.append(
                AdvertisementReport(
                    device_id=device.address,
                    manufacturer_id=int(manufacturer_id),
                    payload=bytes(data),
                    observed_at=observed_at,
                    rssi=getattr(advertisement, "rssi", None),
                )
            )

    async def start_scan(self) -> ScanHandle:
        if self._handle is not None:
            raise ScanAlreadyActiveError("A scan is already in progress on this adapter.")

        try:
            from bleak import BleakScanner  # type: ignore
        except Exception as exc:  # pragma: no cover - import failure path
            raise AdapterUnavailableError(
                "BLE scanning requires 'bleak'. Install dependency and retry."
            ) from exc

        kwargs: dict[str, Any] = {"detection_callback": self._on_advertisement}
        if self.adapter:
            kwargs["adapter"] = self.adapter

        try:
            scanner = BleakScanner(**kwargs)
            await scanner.start()
        except Exception as exc:
            if _is_in_progress(exc):
                raise ScanAlreadyActiveError(f"Adapter reports a scan already in progress: {exc}") from exc
            raise AdapterUnavailableError(f"Could not start BLE scan: {exc}") from exc

        self._queue.clear()
        self._scanner = scanner
        self._handle = ScanHandle(id=next(self._ids), adapter=self.adapter)
        LOGGER.debug("BLE scan %d started (adapter=%s)", self._handle.id, self.adapter or "default")
        return self._handle

    async def poll(self, handle: ScanHandle) -> list[AdvertisementReport]:
        if handle != self._handle:
            raise ScanError(f"Scan handle {handle.id} is not active")
        reports = list(self._queue)
        self._queue.clear()
        return reports

    async def stop_scan(self, handle: ScanHandle) -> None:
        if handle != self._handle:
            return
        scanner = self._scanner
        self._scanner = None
        self._handle = None
        self._queue.clear()
        try:
            await scanner.stop()
        except Exception as exc:
            LOGGER.warning("Stopping BLE scan %d failed: %s", handle.id, exc)
        else:
            LOGGER.debug("BLE scan %d stopped", handle.id)
