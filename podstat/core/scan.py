"""Bounded, polling BLE scan that stops at the first recognised device."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence

from podstat.core.adv_filter import filter_report
from podstat.core.decoder import decode
from podstat.core.errors import ScanSessionError, UnknownModelError
from podstat.core.model import (
    AdvertisementReport,
    DeviceStatus,
    LayoutProfile,
    ScanConfig,
    ScanOutcome,
    ScanState,
)
from podstat.core.resolver import ModelResolver, assemble_status
from podstat.transports.base import AdvertisementSource

LOGGER = logging.getLogger(__name__)

Pipeline = Sequence[tuple[LayoutProfile, ModelResolver]]


def build_pipeline(profiles: Sequence[LayoutProfile]) -> list[tuple[LayoutProfile, ModelResolver]]:
    ordered = sorted(profiles, key=lambda p: (p.priority, p.id))
    return [(profile, ModelResolver(profile.models)) for profile in ordered]


def match_report(report: AdvertisementReport, pipeline: Pipeline) -> DeviceStatus | None:
    """Run one report through filter, decoder, and resolver.

    Profiles are tried in order, skipping those whose layout excludes the
    payload prefix; the first one whose model code resolves decodes the
    report. Returns None when nothing matches.
    """
    packet = filter_report(report)
    if packet is None:
        return None

    for profile, resolver in pipeline:
        if not profile.layout.accepts(packet.payload):
            continue
        fields = decode(packet, profile.layout)
        try:
            model = resolver.resolve(fields.model_code)
        except UnknownModelError as exc:
            LOGGER.debug("%s from %s via %s", exc, report.device_id, profile.id)
            continue
        return assemble_status(
            model,
            fields,
            device_id=report.device_id,
            layout_id=profile.id,
            observed_at=report.observed_at,
        )
    return None


class ScanController:
    """One scan session: Idle -> Scanning -> Found | TimedOut.

    Owned by the caller and usable once. The scan handle taken from the
    source is released exactly once on every exit path.
    """

    def __init__(
        self,
        source: AdvertisementSource,
        profiles: Sequence[LayoutProfile],
        config: ScanConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._pipeline = build_pipeline(profiles)
        self.config = config or ScanConfig()
        self._clock = clock
        self._sleep = sleep
        self._state = ScanState.IDLE
        self._cancelled = False

    @property
    def state(self) -> ScanState:
        return self._state

    def cancel(self) -> None:
        self._cancelled = True

    async def run(self) -> ScanOutcome:
        if self._state is not ScanState.IDLE:
            raise ScanSessionError(f"Scan session already used (state: {self._state.value})")
        self._state = ScanState.SCANNING
        started = self._clock()

        try:
            handle = await self._source.start_scan()
        except asyncio.CancelledError:
            self._state = ScanState.CANCELLED
            raise
        except Exception:
            self._state = ScanState.FAILED
            raise

        LOGGER.info(
            "Scanning for up to %.1fs (poll every %.0fms)",
            self.config.max_duration_s,
            self.config.poll_interval_s * 1000,
        )
        seen = 0
        try:
            while True:
                if self._cancelled:
                    return self._finish(ScanState.CANCELLED, None, started, seen)

                for report in await self._source.poll(handle):
                    seen += 1
                    status = match_report(report, self._pipeline)
                    if status is not None:
                        return self._finish(ScanState.FOUND, status, started, seen)

                elapsed = self._clock() - started
                if elapsed >= self.config.max_duration_s:
                    return self._finish(ScanState.TIMED_OUT, None, started, seen)
                await self._sleep(min(self.config.poll_interval_s, self.config.max_duration_s - elapsed))
        except asyncio.CancelledError:
            self._state = ScanState.CANCELLED
            raise
        except Exception:
            self._state = ScanState.FAILED
            raise
        finally:
            await self._source.stop_scan(handle)

    def _finish(
        self,
        state: ScanState,
        status: DeviceStatus | None,
        started: float,
        seen: int,
    ) -> ScanOutcome:
        self._state = state
        elapsed = self._clock() - started
        if status is not None:
            LOGGER.info("Found %s (%s) after %.2fs", status.model.name, status.device_id, elapsed)
        else:
            LOGGER.info("Scan ended %s after %.2fs, %d report(s) seen", state.value, elapsed, seen)
        return ScanOutcome(state=state, status=status, elapsed_s=elapsed, reports_seen=seen)
