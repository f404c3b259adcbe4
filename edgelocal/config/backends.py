"""Backend definitions read from the ``local_server.backends`` manifest section."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from edgelocal.config.client_cert import ClientCertInfo, read_pem_items
from edgelocal.errors import BackendConfigError, BackendErrorKind, InvalidBackendDefinition
from edgelocal.httpparts import Uri, validate_header_value

_CERTIFICATE_LABEL = "CERTIFICATE"


def _check_for_unrecognized_keys(table: Mapping[str, Any]) -> None:
    """Raise for the first key left over after the expected ones were removed."""
    if table:
        raise BackendConfigError(BackendErrorKind.UNRECOGNIZED_KEY, key=min(table))


def _pop_non_empty_string(
    table: dict[str, Any], name: str, empty: BackendErrorKind, wrong_type: BackendErrorKind
) -> str | None:
    if name not in table:
        return None
    value = table.pop(name)
    if not isinstance(value, str):
        raise BackendConfigError(wrong_type)
    if not value.strip():
        raise BackendConfigError(empty)
    return value


def _pop_bool(
    table: dict[str, Any], name: str, default: bool, wrong_type: BackendErrorKind
) -> bool:
    if name not in table:
        return default
    value = table.pop(name)
    if not isinstance(value, bool):
        raise BackendConfigError(wrong_type)
    return value


def _ca_error(detail: str) -> BackendConfigError:
    return BackendConfigError(BackendErrorKind.INVALID_CA_CERT_ENTRY, detail=detail)


def _format_key_list(keys: list[str]) -> str:
    return "[" + ", ".join(f'"{key}"' for key in keys) + "]"


def parse_ca_certificates(value: Any) -> list[bytes]:
    """Return the DER certificates described by a ``ca_certificate`` value.

    The value may be PEM text, a table with a ``file`` or ``value`` field, or
    an array of either; arrays are flattened in order.
    """
    if isinstance(value, str):
        if not value.strip():
            raise BackendConfigError(BackendErrorKind.EMPTY_CA_CERT)
        try:
            items = read_pem_items(value)
        except ValueError as err:
            raise _ca_error(f"Couldn't process certificate: {err}") from err
        return [der for label, der in items if label == _CERTIFICATE_LABEL]

    if isinstance(value, list):
        return [cert for item in value for cert in parse_ca_certificates(item)]

    if isinstance(value, Mapping):
        table = dict(value)
        if "file" not in table:
            if "value" not in table:
                raise _ca_error(
                    "'ca_certificate' was a dictionary without a 'file' or 'value' field"
                )
            inline = table.pop("value")
            if not isinstance(inline, str):
                raise _ca_error("invalid format for 'value' field")
            return parse_ca_certificates(inline)

        path = table.pop("file")
        if not isinstance(path, str):
            raise _ca_error("invalid format for file reference")
        if table:
            raise _ca_error(f"unknown ca_certificate keys: {_format_key_list(list(table))}")
        try:
            with open(path, encoding="utf-8") as handle:
                data = handle.read()
        except (OSError, UnicodeDecodeError) as err:
            raise _ca_error(str(err)) from err
        return parse_ca_certificates(data)

    raise _ca_error(
        "unknown format for 'ca_certificates' field; should be a certificate string, "
        "a dictionary with a file reference, or an array of the previous"
    )


@dataclass(frozen=True)
class Backend:
    """A single backend definition."""

    uri: Uri
    override_host: str | None = None
    cert_host: str | None = None
    use_sni: bool = True
    grpc: bool = False
    client_cert: ClientCertInfo | None = None
    ca_certs: tuple[bytes, ...] = ()

    @classmethod
    def from_table(cls, table: Mapping[str, Any]) -> Backend:
        """Validate one backend table; raise :class:`BackendConfigError` if it is invalid."""
        if not isinstance(table, Mapping):
            raise BackendConfigError(BackendErrorKind.INVALID_ENTRY_TYPE)
        toml = dict(table)

        if "url" not in toml:
            raise BackendConfigError(BackendErrorKind.MISSING_URL)
        url = toml.pop("url")
        if not isinstance(url, str):
            raise BackendConfigError(BackendErrorKind.INVALID_URL_ENTRY)
        try:
            uri = Uri.parse(url)
        except ValueError as err:
            raise BackendConfigError(BackendErrorKind.INVALID_URL, detail=str(err)) from err

        override_host = _pop_non_empty_string(
            toml,
            "override_host",
            BackendErrorKind.EMPTY_OVERRIDE_HOST,
            BackendErrorKind.INVALID_OVERRIDE_HOST_ENTRY,
        )
        if override_host is not None:
            try:
                validate_header_value(override_host)
            except ValueError as err:
                raise BackendConfigError(
                    BackendErrorKind.INVALID_OVERRIDE_HOST, detail=str(err)
                ) from err

        cert_host = _pop_non_empty_string(
            toml,
            "cert_host",
            BackendErrorKind.EMPTY_CERT_HOST,
            BackendErrorKind.INVALID_CERT_HOST_ENTRY,
        )
        use_sni = _pop_bool(toml, "use_sni", True, BackendErrorKind.INVALID_USE_SNI_ENTRY)
        ca_certs = (
            parse_ca_certificates(toml.pop("ca_certificate"))
            if "ca_certificate" in toml
            else []
        )
        grpc = _pop_bool(toml, "grpc", False, BackendErrorKind.INVALID_GRPC_ENTRY)

        _check_for_unrecognized_keys(toml)

        return cls(
            uri=uri,
            override_host=override_host,
            cert_host=cert_host,
            use_sni=use_sni,
            grpc=grpc,
            client_cert=None,
            ca_certs=tuple(ca_certs),
        )


def parse_backends(table: Mapping[str, Any]) -> dict[str, Backend]:
    """Parse the ``backends`` table into backends keyed by name.

    Raises :class:`InvalidBackendDefinition` naming the first invalid backend.
    """
    backends: dict[str, Backend] = {}
    for name in sorted(table):
        definition = table[name]
        try:
            if not isinstance(definition, Mapping):
                raise BackendConfigError(BackendErrorKind.INVALID_ENTRY_TYPE)
            backends[name] = Backend.from_table(definition)
        except BackendConfigError as err:
            raise InvalidBackendDefinition(name, err) from err
    return backends