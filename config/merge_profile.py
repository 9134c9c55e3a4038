"""
Merge profile configuration for the duplicate merge job.

A profile names the natural key that identifies a student and the two field
prefixes that address the guardian contact slots on each record. Defaults
come from the Flask config; operators can override them per deployment by
pointing ``ROSTER_MERGE_PROFILE_PATH`` at a JSON or YAML file such as::

    natural_key: studentId
    slot_a_prefix: parent
    slot_b_prefix: parent2
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, MutableMapping

import yaml


@dataclass(frozen=True)
class MergeProfile:
    """
    Field layout used when collapsing duplicate student records.

    Attributes:
        natural_key: Field whose trimmed value identifies one student.
        slot_a_prefix: Prefix of the primary guardian slot (``parentFirstName`` ...).
        slot_b_prefix: Prefix of the secondary guardian slot (``parent2FirstName`` ...).
    """

    natural_key: str = "studentId"
    slot_a_prefix: str = "parent"
    slot_b_prefix: str = "parent2"

    def as_kwargs(self) -> dict[str, str]:
        return {
            "natural_key": self.natural_key,
            "slot_a_prefix": self.slot_a_prefix,
            "slot_b_prefix": self.slot_b_prefix,
        }


DEFAULT_PROFILE = MergeProfile()


class MergeProfileConfigError(RuntimeError):
    """Raised when a merge profile override cannot be parsed."""


def _load_override(path: Path) -> MutableMapping[str, object]:
    if not path.exists():
        raise MergeProfileConfigError(f"Merge profile file {path} does not exist.")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem failure
        raise MergeProfileConfigError(f"Unable to read merge profile file {path}: {exc}") from exc

    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise MergeProfileConfigError(f"Merge profile file {path} is not valid: {exc}") from exc

    if not isinstance(data, Mapping):
        raise MergeProfileConfigError("Merge profile must be a JSON/YAML object.")
    return dict(data)


def _coerce_field(raw: Mapping[str, object], name: str, default: str) -> str:
    value = raw.get(name)
    if value is None:
        return default
    token = str(value).strip()
    if not token:
        raise MergeProfileConfigError(f"Merge profile field {name} must not be blank.")
    return token


def _coerce_profile(raw: Mapping[str, object], base: MergeProfile) -> MergeProfile:
    profile = replace(
        base,
        natural_key=_coerce_field(raw, "natural_key", base.natural_key),
        slot_a_prefix=_coerce_field(raw, "slot_a_prefix", base.slot_a_prefix),
        slot_b_prefix=_coerce_field(raw, "slot_b_prefix", base.slot_b_prefix),
    )
    if profile.slot_a_prefix == profile.slot_b_prefix:
        raise MergeProfileConfigError("Guardian slot prefixes must differ.")
    return profile


def profile_from_config(config: Mapping[str, object]) -> MergeProfile:
    """Build the base profile from Flask config values."""

    return MergeProfile(
        natural_key=str(config.get("ROSTER_NATURAL_KEY") or DEFAULT_PROFILE.natural_key),
        slot_a_prefix=str(config.get("ROSTER_GUARDIAN_SLOT_A_PREFIX") or DEFAULT_PROFILE.slot_a_prefix),
        slot_b_prefix=str(config.get("ROSTER_GUARDIAN_SLOT_B_PREFIX") or DEFAULT_PROFILE.slot_b_prefix),
    )


def load_profile(config: Mapping[str, object] | None = None) -> MergeProfile:
    """
    Load the active merge profile.

    ``config`` is the Flask config (or any mapping with the same keys). When
    ``ROSTER_MERGE_PROFILE_PATH`` is set, the JSON/YAML file overrides the
    configured defaults field by field.
    """

    config_map = config or {}
    base = profile_from_config(config_map)
    override_path = config_map.get("ROSTER_MERGE_PROFILE_PATH")
    if not override_path:
        return base
    raw = _load_override(Path(str(override_path)))
    return _coerce_profile(raw, base)


__all__ = [
    "DEFAULT_PROFILE",
    "MergeProfile",
    "MergeProfileConfigError",
    "load_profile",
    "profile_from_config",
]
