"""The ``fastly.toml`` package manifest and its ``local_server`` section."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from edgelocal.config.backends import Backend, parse_backends
from edgelocal.config.device_detection import DeviceDetection
from edgelocal.config.dictionaries import Dictionary, parse_dictionaries
from edgelocal.config.geolocation import Geolocation
from edgelocal.config.object_stores import parse_object_stores
from edgelocal.config.secret_stores import parse_secret_stores
from edgelocal.errors import ConfigIoError, InvalidFastlyToml
from edgelocal.object_store import ObjectStores
from edgelocal.secret_store import SecretStores


class ExperimentalModule(Enum):
    """Experimental WASI modules that may be enabled."""

    WASI_NN = "wasi-nn"


class UnknownImportBehavior(Enum):
    """How imports unknown to the host are treated."""

    LINK_ERROR = "link-error"
    TRAP = "trap"
    ZERO_OR_NULL = "zero-or-null"


_SECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "backends": ("backends",),
    "device_detection": ("device_detection",),
    "geolocation": ("geolocation",),
    "dictionaries": ("dictionaries", "config_stores"),
    "object_stores": ("object_stores", "object_store", "kv_stores"),
    "secret_stores": ("secret_stores",),
}


def _section(table: Mapping[str, Any], name: str) -> Mapping[str, Any] | None:
    present = [alias for alias in _SECTION_ALIASES[name] if alias in table]
    if not present:
        return None
    if len(present) > 1:
        raise InvalidFastlyToml(f"duplicate field `{name}`")
    value = table[present[0]]
    if not isinstance(value, Mapping):
        raise InvalidFastlyToml(f"invalid type for `{present[0]}`, expected a table")
    return value


@dataclass
class LocalServerConfig:
    """The settings in the ``local_server`` section of a manifest."""

    backends: dict[str, Backend] = field(default_factory=dict)
    device_detection: DeviceDetection = field(default_factory=DeviceDetection)
    geolocation: Geolocation = field(default_factory=Geolocation)
    dictionaries: dict[str, Dictionary] = field(default_factory=dict)
    object_stores: ObjectStores = field(default_factory=ObjectStores)
    secret_stores: SecretStores = field(default_factory=SecretStores)

    @classmethod
    def from_table(cls, table: Mapping[str, Any]) -> LocalServerConfig:
        """Validate a ``local_server`` table.

        ``config_stores`` is accepted for ``dictionaries``, and ``object_store``
        or ``kv_stores`` for ``object_stores``. Unknown keys are ignored.
        """
        if not isinstance(table, Mapping):
            raise InvalidFastlyToml("invalid type for `local_server`, expected a table")
        sections = {name: _section(table, name) for name in _SECTION_ALIASES}
        config = cls()
        if (backends := sections["backends"]) is not None:
            config.backends = parse_backends(backends)
        if (device_detection := sections["device_detection"]) is not None:
            config.device_detection = DeviceDetection.from_table(device_detection)
        if (geolocation := sections["geolocation"]) is not None:
            config.geolocation = Geolocation.from_table(geolocation)
        if (dictionaries := sections["dictionaries"]) is not None:
            config.dictionaries = parse_dictionaries(dictionaries)
        if (object_stores := sections["object_stores"]) is not None:
            config.object_stores = parse_object_stores(object_stores)
        if (secret_stores := sections["secret_stores"]) is not None:
            config.secret_stores = parse_secret_stores(secret_stores)
        return config


def _load_toml(text: str) -> dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as err:
        raise InvalidFastlyToml(err) from err


def read_local_server_config(text: str) -> LocalServerConfig:
    """Parse TOML text holding the body of a ``local_server`` section."""
    return LocalServerConfig.from_table(_load_toml(text))


def _optional_string(table: Mapping[str, Any], name: str) -> str:
    value = table.get(name, "")
    if not isinstance(value, str):
        raise InvalidFastlyToml(f"invalid type for `{name}`, expected a string")
    return value


@dataclass
class FastlyConfig:
    """The contents of a package's ``fastly.toml``."""

    name: str = ""
    description: str = ""
    authors: list[str] = field(default_factory=list)
    language: str = ""
    local_server: LocalServerConfig = field(default_factory=LocalServerConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> FastlyConfig:
        """Read and parse a manifest file; raise :class:`ConfigIoError` if unreadable."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as err:
            raise ConfigIoError(path, err) from err
        return cls.from_str(text)

    @classmethod
    def from_str(cls, text: str) -> FastlyConfig:
        """Parse manifest TOML text."""
        document = _load_toml(text)
        name = _optional_string(document, "name")
        description = _optional_string(document, "description")
        language = _optional_string(document, "language")
        authors = document.get("authors", [])
        if not isinstance(authors, list) or not all(isinstance(a, str) for a in authors):
            raise InvalidFastlyToml("invalid type for `authors`, expected a sequence of strings")
        local_server = (
            LocalServerConfig.from_table(document["local_server"])
            if "local_server" in document
            else LocalServerConfig()
        )
        return cls(
            name=name,
            description=description,
            authors=list(authors),
            language=language,
            local_server=local_server,
        )

    def backends(self) -> dict[str, Backend]:
        return self.local_server.backends

    def device_detection(self) -> DeviceDetection:
        return self.local_server.device_detection

    def geolocation(self) -> Geolocation:
        return self.local_server.geolocation

    def dictionaries(self) -> dict[str, Dictionary]:
        return self.local_server.dictionaries

    def object_stores(self) -> ObjectStores:
        return self.local_server.object_stores

    def secret_stores(self) -> SecretStores:
        return self.local_server.secret_stores