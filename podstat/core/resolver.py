"""Model code lookup and status assembly."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from podstat.core.errors import UnknownModelError
from podstat.core.model import (
    BatteryValue,
    Component,
    DeviceStatus,
    FormFactor,
    ModelDescriptor,
    RawFields,
)


class ModelResolver:
    """Read-only, many-to-one mapping of raw model codes to descriptors."""

    def __init__(self, table: Mapping[bytes, ModelDescriptor]) -> None:
        self._table: Mapping[bytes, ModelDescriptor] = MappingProxyType(dict(table))

    @property
    def table(self) -> Mapping[bytes, ModelDescriptor]:
        return self._table

    def resolve(self, code: bytes) -> ModelDescriptor:
        descriptor = self._table.get(bytes(code))
        if descriptor is None:
            raise UnknownModelError(bytes(code))
        return descriptor

    def models(self) -> list[ModelDescriptor]:
        """Unique descriptors, one per display name, ordered by first code."""
        seen: dict[str, ModelDescriptor] = {}
        for code in sorted(self._table):
            descriptor = self._table[code]
            seen.setdefault(descriptor.name, descriptor)
        return list(seen.values())

    def codes_for(self, name: str) -> tuple[bytes, ...]:
        return tuple(sorted(code for code, d in self._table.items() if d.name == name))


def build_components(model: ModelDescriptor, fields: RawFields) -> tuple[Component, ...]:
    left = Component("left", BatteryValue.from_raw(fields.left_raw), fields.charging_left)
    right = Component("right", BatteryValue.from_raw(fields.right_raw), fields.charging_right)
    if model.form_factor is FormFactor.OVER_EAR:
        # A headset reports itself in one pod slot; the other is usually 0xF.
        source = left if left.battery.is_known or not right.battery.is_known else right
        return (Component("headphones", source.battery, source.charging),)
    case = Component("case", BatteryValue.from_raw(fields.case_raw), fields.charging_case)
    return (left, right, case)


def assemble_status(
    model: ModelDescriptor,
    fields: RawFields,
    *,
    device_id: str,
    layout_id: str,
    observed_at: float,
) -> DeviceStatus:
    return DeviceStatus(
        model=model,
        components=build_components(model, fields),
        device_id=device_id,
        layout_id=layout_id,
        observed_at=observed_at,
    )
