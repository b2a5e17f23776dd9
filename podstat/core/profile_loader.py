"""Layout profile loading and validation for YAML-based podstat profiles."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from podstat.core.errors import ProfileLoadError, ProfileValidationError
from podstat.core.model import (
    PROXIMITY_PAYLOAD_LENGTH,
    FormFactor,
    LayoutProfile,
    ModelDescriptor,
    NibbleLocation,
    PacketLayout,
)

_HEX_RE = re.compile(r"^[0-9a-f]+$")
_DEFAULT_PRIORITY = 100
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ProfileValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedProfiles:
    profiles: dict[str, LayoutProfile]
    warnings: tuple[str, ...]

    def ordered(self) -> list[LayoutProfile]:
        return sorted(self.profiles.values(), key=lambda p: (p.priority, p.id))


def _load_schema_validator() -> Any:
    schema_text = resources.files("podstat.schemas").joinpath("profile.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _profile_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "podstat/profiles", xdg_data / "podstat/profiles"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileLoadError(f"Could not read profile file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ProfileValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ProfileValidationError(f"Profile file {path} must contain a mapping at root")
    return loaded


def _normalize_hex(
    value: str,
    *,
    context: str,
    length: int | None = None,
    allow_empty: bool = False,
) -> bytes:
    normalized = str(value).strip().lower().replace(" ", "")
    if len(normalized) == 0:
        if allow_empty:
            return b""
        raise ProfileValidationError(f"{context} must not be empty")
    if len(normalized) % 2 != 0:
        raise ProfileValidationError(f"{context} must have even-length hex")
    if not _HEX_RE.match(normalized):
        raise ProfileValidationError(f"{context} must contain only [0-9a-f]")
    code = bytes.fromhex(normalized)
    if length is not None and len(code) != length:
        raise ProfileValidationError(
            f"{context} must be {length} byte(s) to match the layout model field"
        )
    return code


def _nibble(spec: dict[str, Any]) -> NibbleLocation:
    return NibbleLocation(offset=int(spec["offset"]), nibble=spec["nibble"])


def _build_layout(spec: dict[str, Any], *, context: str) -> PacketLayout:
    model_offset = int(spec["model"]["offset"])
    model_length = int(spec["model"]["length"])
    if model_offset + model_length > PROXIMITY_PAYLOAD_LENGTH:
        raise ProfileValidationError(
            f"{context}.model extends past the {PROXIMITY_PAYLOAD_LENGTH}-byte payload"
        )

    charging = spec["charging"]
    bits = (
        int(charging.get("left_bit", 0)),
        int(charging.get("right_bit", 1)),
        int(charging.get("case_bit", 2)),
    )
    if len(set(bits)) != len(bits):
        raise ProfileValidationError(f"{context}.charging bit positions must be distinct")

    return PacketLayout(
        model_offset=model_offset,
        model_length=model_length,
        orientation_offset=int(spec["orientation"]["offset"]),
        orientation_mask=int(spec["orientation"]["mask"]),
        swap_when=spec["orientation"].get("swap_when", "set"),
        first_pod=_nibble(spec["first_pod"]),
        second_pod=_nibble(spec["second_pod"]),
        case=_nibble(spec["case"]),
        charging=_nibble(charging),
        left_bit=bits[0],
        right_bit=bits[1],
        case_bit=bits[2],
        charging_follows_orientation=charging.get("follows_orientation", False),
        skip_prefix=_normalize_hex(
            spec.get("skip_prefix", ""),
            context=f"{context}.skip_prefix",
            allow_empty=True,
        ),
    )


def _build_profile(doc: dict[str, Any], source: Path | Traversable) -> LayoutProfile:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ProfileValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    layout = _build_layout(doc["layout"], context=f"{doc['id']}.layout")

    models: dict[bytes, ModelDescriptor] = {}
    for raw_code, entry in doc["models"].items():
        code = _normalize_hex(
            raw_code,
            context=f"{doc['id']}.models.{raw_code}",
            length=layout.model_length,
        )
        if code in models:
            raise ProfileValidationError(f"{doc['id']}: model code {code.hex()} listed twice")
        models[code] = ModelDescriptor(
            code=code,
            name=entry["name"],
            form_factor=FormFactor(entry["form_factor"]),
        )

    return LayoutProfile(
        id=doc["id"],
        name=doc["name"],
        priority=int(doc.get("priority", _DEFAULT_PRIORITY)),
        layout=layout,
        models=models,
    )


def _iter_packaged_profile_paths() -> list[Traversable]:
    profile_root = resources.files("podstat.profiles")
    return [item for item in profile_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_profile_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _profile_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_profiles() -> LoadedProfiles:
    profiles: dict[str, LayoutProfile] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_profile_paths(), key=lambda p: p.name):
        doc = _read_yaml(path)
        profile = _build_profile(doc, path)
        profiles[profile.id] = profile

    for path in _iter_user_profile_paths():
        doc = _read_yaml(path)
        profile = _build_profile(doc, path)
        if profile.id in profiles:
            warning = f"User profile '{profile.id}' overrides packaged profile"
            LOGGER.warning(warning)
            warnings.append(warning)
        profiles[profile.id] = profile

    return LoadedProfiles(profiles=profiles, warnings=tuple(warnings))
