"""Stable public API for building tooling on top of podstat.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from dataclasses import dataclass

from podstat.core.errors import (
    AdapterUnavailableError,
    LayoutSelectionError,
    PayloadFormatError,
    PodstatError,
    ProfileLoadError,
    ProfileValidationError,
    ScanAlreadyActiveError,
    ScanError,
    ScanSessionError,
    UnknownModelError,
)
from podstat.core.model import (
    AdvertisementReport,
    BatteryValue,
    Component,
    DeviceStatus,
    FormFactor,
    LayoutProfile,
    ModelDescriptor,
    ScanConfig,
    ScanOutcome,
    ScanState,
)
from podstat.core.service import StatusService
from podstat.transports.base import AdvertisementSource

__all__ = [
    "PodstatError",
    "AdapterUnavailableError",
    "LayoutSelectionError",
    "PayloadFormatError",
    "ProfileLoadError",
    "ProfileValidationError",
    "ScanAlreadyActiveError",
    "ScanError",
    "ScanSessionError",
    "UnknownModelError",
    "AdvertisementReport",
    "AdvertisementSource",
    "BatteryValue",
    "Component",
    "DeviceStatus",
    "FormFactor",
    "LayoutProfile",
    "ModelDescriptor",
    "ScanConfig",
    "ScanOutcome",
    "ScanState",
    "ModelCatalog",
    "Client",
]


@dataclass(frozen=True)
class ModelCatalog:
    """Model tables of the selected layout profiles, keyed by profile id."""

    models: dict[str, tuple[ModelDescriptor, ...]]

    def names(self) -> tuple[str, ...]:
        return tuple(sorted({m.name for table in self.models.values() for m in table}))


class Client:
    """Public client for reading earbud battery state.

    A `Client` instance wraps layout profile loading, the bounded BLE scan,
    and offline payload decoding behind a stable API intended for third-party
    tools (status bars, widgets, scripts).
    """

    def __init__(
        self,
        *,
        source: AdvertisementSource | None = None,
        adapter: str | None = None,
    ) -> None:
        self._service = StatusService(source=source, adapter=adapter)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def runtime_warnings(self) -> tuple[str, ...]:
        return self._service.runtime_warnings

    def list_profiles(self) -> list[LayoutProfile]:
        return self._service.list_profiles()

    def list_models(self, *, layout_id: str | None = None) -> ModelCatalog:
        return ModelCatalog(models=self._service.model_catalog(layout_id))

    def scan(
        self,
        *,
        timeout_s: float | None = None,
        interval_s: float | None = None,
        layout_id: str | None = None,
    ) -> ScanOutcome:
        return self._service.scan(timeout_s=timeout_s, interval_s=interval_s, layout_id=layout_id)

    def get_status(
        self,
        *,
        timeout_s: float | None = None,
        interval_s: float | None = None,
        layout_id: str | None = None,
    ) -> DeviceStatus | None:
        return self.scan(timeout_s=timeout_s, interval_s=interval_s, layout_id=layout_id).status

    def decode_payload(
        self,
        payload: bytes | str,
        *,
        manufacturer_id: int = 0x004C,
        layout_id: str | None = None,
    ) -> DeviceStatus | None:
        return self._service.decode_payload(
            payload,
            manufacturer_id=manufacturer_id,
            layout_id=layout_id,
        )
