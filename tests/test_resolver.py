from types import MappingProxyType

import pytest

from podstat.core.errors import UnknownModelError
from podstat.core.model import FormFactor, ModelDescriptor, RawFields
from podstat.core.profile_loader import load_profiles
from podstat.core.resolver import ModelResolver, build_components

PRO_2 = ModelDescriptor(code=b"\x14\x20", name="AirPods Pro 2", form_factor=FormFactor.IN_EAR)
PRO_2_USBC = ModelDescriptor(code=b"\x24\x20", name="AirPods Pro 2", form_factor=FormFactor.IN_EAR)
MAX = ModelDescriptor(code=b"\x0a\x20", name="AirPods Max", form_factor=FormFactor.OVER_EAR)


def _fields(left: int = 10, right: int = 9, case: int = 4, charging: tuple[bool, bool, bool] = (False, False, False)) -> RawFields:
    return RawFields(
        model_code=b"\x0e\x20",
        left_raw=left,
        right_raw=right,
        case_raw=case,
        orientation_flipped=False,
        charging_left=charging[0],
        charging_right=charging[1],
        charging_case=charging[2],
        charging_nibble=0,
    )


def test_many_to_one_codes_resolve_to_same_product() -> None:
    resolver = ModelResolver({PRO_2.code: PRO_2, PRO_2_USBC.code: PRO_2_USBC})
    first = resolver.resolve(b"\x14\x20")
    second = resolver.resolve(b"\x24\x20")
    assert first.name == second.name == "AirPods Pro 2"
    assert first.form_factor is second.form_factor is FormFactor.IN_EAR
    assert [m.name for m in resolver.models()] == ["AirPods Pro 2"]
    assert resolver.codes_for("AirPods Pro 2") == (b"\x14\x20", b"\x24\x20")


def test_packaged_table_is_many_to_one() -> None:
    profile = load_profiles().profiles["proximity_pairing"]
    resolver = ModelResolver(profile.models)
    assert resolver.resolve(b"\x0a\x20").name == resolver.resolve(b"\x1f\x20").name == "AirPods Max"
    assert resolver.resolve(b"\x1f\x20").form_factor is FormFactor.OVER_EAR


def test_unknown_model_raises() -> None:
    resolver = ModelResolver({PRO_2.code: PRO_2})
    with pytest.raises(UnknownModelError) as exc:
        resolver.resolve(b"\xff\xff")
    assert exc.value.code == b"\xff\xff"
    assert "ffff" in str(exc.value)


def test_table_is_read_only() -> None:
    source = {PRO_2.code: PRO_2}
    resolver = ModelResolver(source)
    source[MAX.code] = MAX
    assert isinstance(resolver.table, MappingProxyType)
    with pytest.raises(TypeError):
        resolver.table[MAX.code] = MAX  # type: ignore[index]
    with pytest.raises(UnknownModelError):
        resolver.resolve(MAX.code)


def test_in_ear_component_order() -> None:
    components = build_components(PRO_2, _fields(charging=(False, True, True)))
    assert [(c.name, c.battery.percent, c.charging) for c in components] == [
        ("left", 100, False),
        ("right", 95, True),
        ("case", 45, True),
    ]


def test_over_ear_single_component() -> None:
    components = build_components(MAX, _fields(left=7, right=15, case=3, charging=(True, False, True)))
    assert [(c.name, c.battery.percent, c.charging) for c in components] == [("headphones", 75, True)]


def test_over_ear_falls_back_to_other_slot() -> None:
    components = build_components(MAX, _fields(left=15, right=6, charging=(False, True, False)))
    assert [(c.name, c.battery.percent, c.charging) for c in components] == [("headphones", 65, True)]
