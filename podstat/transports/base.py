"""Advertisement source interfaces."""

from __future__ import annotations

from typing import Protocol

from podstat.core.model import AdvertisementReport, ScanHandle


class AdvertisementSource(Protocol):
    async def start_scan(self) -> ScanHandle:
        """Begin discovery; raise ScanAlreadyActiveError if a scan is running."""

    async def poll(self, handle: ScanHandle) -> list[AdvertisementReport]:
        """Return reports observed since the previous call."""

    async def stop_scan(self, handle: ScanHandle) -> None:
        """Stop discovery. Calling it again for the same handle is a no-op."""
