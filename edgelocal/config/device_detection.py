"""Device detection data keyed by user agent, read from the manifest."""

from __future__ import annotations

import copy
import dataclasses
import json
import math
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from edgelocal.errors import (
    DeviceDetectionConfigError,
    DeviceDetectionErrorKind,
    InvalidDeviceDetectionDefinition,
)

_DEFINITION_NAME = "device_detection_mapping"


class _UnsupportedValue(Exception):
    """A TOML value has no JSON counterpart."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _load_json(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_constant)


def _toml_to_json(value: Any) -> Any:
    """Convert a TOML value to a JSON value; tables become objects."""
    if isinstance(value, (bool, str, int)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise _UnsupportedValue(value)
        return value
    if isinstance(value, Mapping):
        return {key: _toml_to_json(item) for key, item in value.items()}
    raise _UnsupportedValue(value)


@dataclasses.dataclass
class DeviceDetectionData:
    """The fields describing one device."""

    data: dict[str, Any] = dataclasses.field(default_factory=dict)

    def insert(self, field: str, value: Any) -> None:
        """Set ``field`` to ``value``, replacing any earlier value."""
        self.data[field] = value

    def to_json(self) -> str:
        """Return the data as compact JSON with sorted keys, or ``""`` if it cannot be encoded."""
        try:
            return json.dumps(
                self.data,
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
        except (TypeError, ValueError):
            return ""

    def __str__(self) -> str:
        return self.to_json()


def read_device_detection_json(path: str | Path) -> dict[str, DeviceDetectionData]:
    """Read a JSON object mapping user agents to objects of device fields."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise DeviceDetectionConfigError(
            DeviceDetectionErrorKind.IO_ERROR, detail=str(err)
        ) from err
    try:
        document = _load_json(text)
    except ValueError as err:
        raise DeviceDetectionConfigError(DeviceDetectionErrorKind.FILE_WRONG_FORMAT) from err
    if not isinstance(document, dict):
        raise DeviceDetectionConfigError(DeviceDetectionErrorKind.FILE_WRONG_FORMAT)

    user_agents: dict[str, DeviceDetectionData] = {}
    for user_agent, value in document.items():
        if not isinstance(value, dict):
            raise DeviceDetectionConfigError(DeviceDetectionErrorKind.INVALID_INLINE_ENTRY_TYPE)
        user_agents[user_agent] = DeviceDetectionData(dict(value))
    return user_agents


def _process_inline_toml(toml: dict[str, Any]) -> dict[str, DeviceDetectionData]:
    if "user_agents" not in toml:
        raise DeviceDetectionConfigError(DeviceDetectionErrorKind.MISSING_USER_AGENTS)
    table = toml.pop("user_agents")
    if not isinstance(table, Mapping):
        raise DeviceDetectionConfigError(DeviceDetectionErrorKind.INVALID_USER_AGENTS_TYPE)

    user_agents: dict[str, DeviceDetectionData] = {}
    for user_agent in sorted(table):
        entry = table[user_agent]
        if not isinstance(entry, Mapping):
            raise DeviceDetectionConfigError(DeviceDetectionErrorKind.INVALID_INLINE_ENTRY_TYPE)
        data = DeviceDetectionData()
        for name in sorted(entry):
            try:
                data.insert(name, _toml_to_json(entry[name]))
            except _UnsupportedValue:
                raise DeviceDetectionConfigError(
                    DeviceDetectionErrorKind.INVALID_INLINE_ENTRY_TYPE
                ) from None
        user_agents[str(user_agent)] = data
    return user_agents


def _process_json(toml: dict[str, Any]) -> Path:
    if "file" not in toml:
        raise DeviceDetectionConfigError(DeviceDetectionErrorKind.MISSING_FILE)
    file = toml.pop("file")
    if not isinstance(file, str):
        raise DeviceDetectionConfigError(DeviceDetectionErrorKind.INVALID_FILE_ENTRY)
    if not file:
        raise DeviceDetectionConfigError(DeviceDetectionErrorKind.EMPTY_FILE_ENTRY)
    path = Path(file)
    read_device_detection_json(path)
    return path


@dataclasses.dataclass
class DeviceDetection:
    """A mapping from user agents to device data.

    With neither ``user_agents`` nor ``file`` set, the mapping is empty. A
    JSON-backed mapping reads its file again on every lookup.
    """

    user_agents: dict[str, DeviceDetectionData] | None = None
    file: Path | None = None

    @classmethod
    def from_table(cls, table: Mapping[str, Any]) -> DeviceDetection:
        """Build from the ``device_detection`` manifest table.

        Raises :class:`InvalidDeviceDetectionDefinition` if the table is invalid.
        """
        try:
            return cls._from_table(table)
        except DeviceDetectionConfigError as err:
            raise InvalidDeviceDetectionDefinition(_DEFINITION_NAME, err) from err

    @classmethod
    def _from_table(cls, table: Mapping[str, Any]) -> DeviceDetection:
        if not isinstance(table, Mapping):
            raise DeviceDetectionConfigError(DeviceDetectionErrorKind.INVALID_ENTRY_TYPE)
        toml = dict(table)
        if "format" not in toml:
            return cls()
        format_name = toml.pop("format")
        if not isinstance(format_name, str):
            raise DeviceDetectionConfigError(DeviceDetectionErrorKind.INVALID_FORMAT_ENTRY)
        if format_name == "inline-toml":
            return cls(user_agents=_process_inline_toml(toml))
        if format_name == "json":
            return cls(file=_process_json(toml))
        if format_name == "":
            raise DeviceDetectionConfigError(DeviceDetectionErrorKind.EMPTY_FORMAT_ENTRY)
        raise DeviceDetectionConfigError(
            DeviceDetectionErrorKind.INVALID_MAPPING_FORMAT, format=format_name
        )

    def lookup(self, user_agent: str) -> DeviceDetectionData | None:
        """Return a copy of the data for ``user_agent``, or ``None`` if unknown."""
        if self.file is not None:
            user_agents = read_device_detection_json(self.file)
        elif self.user_agents is not None:
            user_agents = self.user_agents
        else:
            return None
        found = user_agents.get(user_agent)
        return copy.deepcopy(found) if found is not None else None