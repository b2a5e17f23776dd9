"""Advertisement filtering."""

from __future__ import annotations

from podstat.core.model import (
    APPLE_MANUFACTURER_ID,
    PROXIMITY_PAYLOAD_LENGTH,
    AdvertisementReport,
    ValidatedPacket,
)


def filter_report(report: AdvertisementReport) -> ValidatedPacket | None:
    """Return a validated packet, or None for anything that is not ours.

    The length check is strict: other Apple accessories broadcast shorter or
    longer manufacturer payloads and must be skipped, not reported.
    """
    if report.manufacturer_id != APPLE_MANUFACTURER_ID:
        return None
    if len(report.payload) != PROXIMITY_PAYLOAD_LENGTH:
        return None
    return ValidatedPacket(report)
