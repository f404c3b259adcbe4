"""Geolocation data keyed by IP address, read from the manifest."""

from __future__ import annotations

import copy
import dataclasses
import ipaddress
import json
import math
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from edgelocal.errors import (
    GeolocationConfigError,
    GeolocationErrorKind,
    InvalidGeolocationDefinition,
)

IpAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_DEFINITION_NAME = "geolocation_mapping"
_ADDRESS_SYNTAX = "invalid IP address syntax"
_IPV6_LOOPBACK = ipaddress.IPv6Address("::1")

_DEFAULT_ENTRIES: dict[str, Any] = {
    "as_name": "Fastly, Inc",
    "as_number": 54113,
    "area_code": 415,
    "city": "San Francisco",
    "conn_speed": "broadband",
    "conn_type": "wired",
    "continent": "NA",
    "country_code": "US",
    "country_code3": "USA",
    "country_name": "United States of America",
    "latitude": 37.77869,
    "longitude": -122.39557,
    "metro_code": 0,
    "postal_code": "94107",
    "proxy_description": "?",
    "proxy_type": "?",
    "region": "CA",
    "utc_offset": -700,
}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


@dataclasses.dataclass
class GeolocationData:
    """The fields describing the location of one address."""

    data: dict[str, Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def default(cls) -> GeolocationData:
        """Return the data reported for loopback addresses by default."""
        return cls(dict(_DEFAULT_ENTRIES))

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


def parse_ip_address(address: str) -> IpAddress:
    """Parse an IPv4 or IPv6 address; raise :class:`GeolocationConfigError` if invalid."""
    if not isinstance(address, str) or "%" in address:
        raise GeolocationConfigError(
            GeolocationErrorKind.INVALID_ADDRESS_ENTRY, detail=_ADDRESS_SYNTAX
        )
    try:
        return ipaddress.ip_address(address)
    except ValueError:
        raise GeolocationConfigError(
            GeolocationErrorKind.INVALID_ADDRESS_ENTRY, detail=_ADDRESS_SYNTAX
        ) from None


def _is_loopback(addr: IpAddress) -> bool:
    if isinstance(addr, ipaddress.IPv6Address):
        return addr == _IPV6_LOOPBACK
    return addr.is_loopback


def read_geolocation_json(path: str | Path) -> dict[IpAddress, GeolocationData]:
    """Read a JSON object mapping IP addresses to objects of location fields."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise GeolocationConfigError(GeolocationErrorKind.IO_ERROR, detail=str(err)) from err
    try:
        document = json.loads(text, parse_constant=_reject_constant)
    except ValueError as err:
        raise GeolocationConfigError(GeolocationErrorKind.FILE_WRONG_FORMAT) from err
    if not isinstance(document, dict):
        raise GeolocationConfigError(GeolocationErrorKind.FILE_WRONG_FORMAT)

    addresses: dict[IpAddress, GeolocationData] = {}
    for address, value in document.items():
        parsed = parse_ip_address(address)
        if not isinstance(value, dict):
            raise GeolocationConfigError(GeolocationErrorKind.INVALID_INLINE_ENTRY_TYPE)
        addresses[parsed] = GeolocationData(dict(value))
    return addresses


def _toml_scalar(value: Any) -> Any:
    if isinstance(value, (bool, str, int)):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    raise GeolocationConfigError(GeolocationErrorKind.INVALID_INLINE_ENTRY_TYPE)


def _process_inline_toml(toml: dict[str, Any]) -> dict[IpAddress, GeolocationData]:
    if "addresses" not in toml:
        raise GeolocationConfigError(GeolocationErrorKind.MISSING_ADDRESSES)
    table = toml.pop("addresses")
    if not isinstance(table, Mapping):
        raise GeolocationConfigError(GeolocationErrorKind.INVALID_ADDRESSES_TYPE)

    addresses: dict[IpAddress, GeolocationData] = {}
    for address in sorted(table):
        parsed = parse_ip_address(address)
        entry = table[address]
        if not isinstance(entry, Mapping):
            raise GeolocationConfigError(GeolocationErrorKind.INVALID_INLINE_ENTRY_TYPE)
        data = GeolocationData()
        for name in sorted(entry):
            data.insert(name, _toml_scalar(entry[name]))
        addresses[parsed] = data
    return addresses


def _process_json(toml: dict[str, Any]) -> Path:
    if "file" not in toml:
        raise GeolocationConfigError(GeolocationErrorKind.MISSING_FILE)
    file = toml.pop("file")
    if not isinstance(file, str):
        raise GeolocationConfigError(GeolocationErrorKind.INVALID_FILE_ENTRY)
    if not file:
        raise GeolocationConfigError(GeolocationErrorKind.EMPTY_FILE_ENTRY)
    path = Path(file)
    read_geolocation_json(path)
    return path


@dataclasses.dataclass
class Geolocation:
    """A mapping from IP addresses to geolocation data.

    With neither ``addresses`` nor ``file`` set, the mapping is empty. A
    JSON-backed mapping reads its file again on every lookup. Loopback
    addresses that are not mapped get :meth:`GeolocationData.default` unless
    ``use_default_loopback`` is false.
    """

    addresses: dict[IpAddress, GeolocationData] | None = None
    file: Path | None = None
    use_default_loopback: bool = True

    @classmethod
    def from_table(cls, table: Mapping[str, Any]) -> Geolocation:
        """Build from the ``geolocation`` manifest table.

        Raises :class:`InvalidGeolocationDefinition` if the table is invalid.
        """
        try:
            return cls._from_table(table)
        except GeolocationConfigError as err:
            raise InvalidGeolocationDefinition(_DEFINITION_NAME, err) from err

    @classmethod
    def _from_table(cls, table: Mapping[str, Any]) -> Geolocation:
        if not isinstance(table, Mapping):
            raise GeolocationConfigError(GeolocationErrorKind.INVALID_ENTRY_TYPE)
        toml = dict(table)

        use_default_loopback = toml.pop("use_default_loopback", True)
        if not isinstance(use_default_loopback, bool):
            raise GeolocationConfigError(GeolocationErrorKind.INVALID_ENTRY_TYPE)

        if "format" not in toml:
            return cls(use_default_loopback=use_default_loopback)
        format_name = toml.pop("format")
        if not isinstance(format_name, str):
            raise GeolocationConfigError(GeolocationErrorKind.INVALID_FORMAT_ENTRY)
        if format_name == "inline-toml":
            return cls(
                addresses=_process_inline_toml(toml),
                use_default_loopback=use_default_loopback,
            )
        if format_name == "json":
            return cls(file=_process_json(toml), use_default_loopback=use_default_loopback)
        if format_name == "":
            raise GeolocationConfigError(GeolocationErrorKind.EMPTY_FORMAT_ENTRY)
        raise GeolocationConfigError(
            GeolocationErrorKind.INVALID_MAPPING_FORMAT, format=format_name
        )

    def _mapping(self) -> Mapping[IpAddress, GeolocationData]:
        if self.file is not None:
            return read_geolocation_json(self.file)
        if self.addresses is not None:
            return self.addresses
        return {}

    def lookup(self, addr: IpAddress | str) -> GeolocationData | None:
        """Return a copy of the data for ``addr``, or ``None`` if unknown."""
        if isinstance(addr, str):
            addr = ipaddress.ip_address(addr)
        found = self._mapping().get(addr)
        if found is not None:
            return copy.deepcopy(found)
        if self.use_default_loopback and _is_loopback(addr):
            return GeolocationData.default()
        return None