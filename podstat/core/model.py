"""Core data models used across decoder, scanner, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

APPLE_MANUFACTURER_ID = 0x004C
PROXIMITY_PAYLOAD_LENGTH = 27


class FormFactor(str, Enum):
    IN_EAR = "in_ear"
    OVER_EAR = "over_ear"


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    FOUND = "found"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class AdvertisementReport:
    device_id: str
    manufacturer_id: int
    payload: bytes
    observed_at: float
    rssi: int | None = None


@dataclass(frozen=True)
class ValidatedPacket:
    """An Apple advertisement with a payload of the expected length.

    Build these with `podstat.core.adv_filter.filter_report`; the checks are
    repeated here so an invalid packet cannot exist at all.
    """

    report: AdvertisementReport

    def __post_init__(self) -> None:
        if self.report.manufacturer_id != APPLE_MANUFACTURER_ID:
            raise ValueError(
                f"manufacturer 0x{self.report.manufacturer_id:04x} is not 0x{APPLE_MANUFACTURER_ID:04x}"
            )
        if len(self.report.payload) != PROXIMITY_PAYLOAD_LENGTH:
            raise ValueError(
                f"payload length {len(self.report.payload)} is not {PROXIMITY_PAYLOAD_LENGTH}"
            )

    @property
    def payload(self) -> bytes:
        return self.report.payload


@dataclass(frozen=True)
class BatteryValue:
    """Battery percentage, or unknown when `percent` is None."""

    percent: int | None = None

    @classmethod
    def from_raw(cls, raw: int) -> BatteryValue:
        """Decode a 4-bit battery nibble.

        0-9 map to the midpoint of their decile (raw * 10 + 5), 10 means full,
        and 11-15 carry no reading.
        """
        if not 0 <= raw <= 0x0F:
            raise ValueError(f"battery nibble out of range: {raw}")
        if raw == 10:
            return cls(100)
        if raw <= 9:
            return cls(raw * 10 + 5)
        return UNKNOWN_BATTERY

    @property
    def is_known(self) -> bool:
        return self.percent is not None

    def __str__(self) -> str:
        return f"{self.percent}%" if self.percent is not None else "unknown"


UNKNOWN_BATTERY = BatteryValue()


@dataclass(frozen=True)
class NibbleLocation:
    offset: int
    nibble: str = "low"

    def read(self, payload: bytes) -> int:
        value = payload[self.offset]
        if self.nibble == "high":
            return (value >> 4) & 0x0F
        return value & 0x0F


@dataclass(frozen=True)
class PacketLayout:
    """Byte offsets and bit masks of one advertisement payload variant."""

    model_offset: int
    model_length: int
    orientation_offset: int
    orientation_mask: int
    first_pod: NibbleLocation
    second_pod: NibbleLocation
    case: NibbleLocation
    charging: NibbleLocation
    swap_when: str = "set"
    left_bit: int = 0
    right_bit: int = 1
    case_bit: int = 2
    charging_follows_orientation: bool = False
    skip_prefix: bytes = b""

    def accepts(self, payload: bytes) -> bool:
        """False for payloads starting with `skip_prefix`, which belong to another layout."""
        return not (self.skip_prefix and payload.startswith(self.skip_prefix))


@dataclass(frozen=True)
class RawFields:
    model_code: bytes
    left_raw: int
    right_raw: int
    case_raw: int
    orientation_flipped: bool
    charging_left: bool
    charging_right: bool
    charging_case: bool
    charging_nibble: int


@dataclass(frozen=True)
class ModelDescriptor:
    code: bytes
    name: str
    form_factor: FormFactor


@dataclass(frozen=True)
class LayoutProfile:
    id: str
    name: str
    priority: int
    layout: PacketLayout
    models: Mapping[bytes, ModelDescriptor] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "models", MappingProxyType(dict(self.models)))


@dataclass(frozen=True)
class Component:
    name: str
    battery: BatteryValue
    charging: bool


@dataclass(frozen=True)
class DeviceStatus:
    model: ModelDescriptor
    components: tuple[Component, ...]
    device_id: str
    layout_id: str
    observed_at: float

    @property
    def form_factor(self) -> FormFactor:
        return self.model.form_factor

    @property
    def battery(self) -> BatteryValue:
        """Headline battery: the lower earbud for in-ear, the unit itself for over-ear."""
        if self.form_factor is FormFactor.OVER_EAR:
            return self.components[0].battery
        known = [
            c.battery.percent
            for c in self.components
            if c.name in ("left", "right") and c.battery.percent is not None
        ]
        return BatteryValue(min(known)) if known else UNKNOWN_BATTERY

    def component(self, name: str) -> Component | None:
        for item in self.components:
            if item.name == name:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model.name,
            "model_code": self.model.code.hex(),
            "form_factor": self.form_factor.value,
            "battery": self.battery.percent,
            "components": [
                {"name": c.name, "battery": c.battery.percent, "charging": c.charging}
                for c in self.components
            ],
            "device": self.device_id,
            "layout": self.layout_id,
        }


@dataclass(frozen=True)
class ScanConfig:
    max_duration_s: float = 3.0
    poll_interval_s: float = 0.1

    def __post_init__(self) -> None:
        if self.max_duration_s <= 0:
            raise ValueError("max_duration_s must be positive")
        if self.poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be positive")


@dataclass(frozen=True)
class ScanHandle:
    id: int
    adapter: str | None = None


@dataclass(frozen=True)
class ScanOutcome:
    state: ScanState
    status: DeviceStatus | None
    elapsed_s: float
    reports_seen: int = 0

    @property
    def found(self) -> bool:
        return self.state is ScanState.FOUND and self.status is not None
