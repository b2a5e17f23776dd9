"""Field decoding for validated proximity-pairing payloads."""

from __future__ import annotations

from podstat.core.model import (
    NibbleLocation,
    PacketLayout,
    RawFields,
    ValidatedPacket,
)

# Proximity-pairing layout used by current firmware: 07 19 01 <model:2> <status>
# <pods> <charging|case> ...
PRIMARY_LAYOUT = PacketLayout(
    model_offset=3,
    model_length=2,
    orientation_offset=5,
    orientation_mask=0x02,
    first_pod=NibbleLocation(offset=6, nibble="high"),
    second_pod=NibbleLocation(offset=6, nibble="low"),
    case=NibbleLocation(offset=7, nibble="low"),
    charging=NibbleLocation(offset=7, nibble="high"),
    swap_when="set",
)

LEGACY_LAYOUT = PacketLayout(
    model_offset=7,
    model_length=1,
    orientation_offset=10,
    orientation_mask=0x02,
    first_pod=NibbleLocation(offset=12, nibble="low"),
    second_pod=NibbleLocation(offset=13, nibble="low"),
    case=NibbleLocation(offset=15, nibble="low"),
    charging=NibbleLocation(offset=14, nibble="low"),
    swap_when="clear",
    charging_follows_orientation=True,
    skip_prefix=b"\x07\x19\x01",
)


def _bit(value: int, position: int) -> bool:
    return bool((value >> position) & 0x01)


def is_flipped(payload: bytes, layout: PacketLayout) -> bool:
    flag_set = bool(payload[layout.orientation_offset] & layout.orientation_mask)
    if layout.swap_when == "clear":
        return not flag_set
    return flag_set


def decode(packet: ValidatedPacket, layout: PacketLayout = PRIMARY_LAYOUT) -> RawFields:
    """Extract raw fields from a validated payload.

    Never fails for a 27-byte payload: battery nibbles are returned raw and
    the percentage conversion maps reserved values to Unknown later.
    """
    payload = packet.payload
    end = layout.model_offset + layout.model_length
    model_code = bytes(payload[layout.model_offset:end])

    flipped = is_flipped(payload, layout)
    first = layout.first_pod.read(payload)
    second = layout.second_pod.read(payload)
    left_raw, right_raw = (second, first) if flipped else (first, second)

    charging = layout.charging.read(payload)
    charging_left = _bit(charging, layout.left_bit)
    charging_right = _bit(charging, layout.right_bit)
    if flipped and layout.charging_follows_orientation:
        charging_left, charging_right = charging_right, charging_left

    return RawFields(
        model_code=model_code,
        left_raw=left_raw,
        right_raw=right_raw,
        case_raw=layout.case.read(payload),
        orientation_flipped=flipped,
        charging_left=charging_left,
        charging_right=charging_right,
        charging_case=_bit(charging, layout.case_bit),
        charging_nibble=charging,
    )
