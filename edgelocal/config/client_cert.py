"""Client certificates and private keys read from PEM data."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum

_CERTIFICATE_LABELS = frozenset({"CERTIFICATE"})
_KEY_LABELS = frozenset({"RSA PRIVATE KEY", "PRIVATE KEY", "EC PRIVATE KEY"})


class ClientCertError(ValueError):
    """Client certificate or key material could not be used."""

    class Kind(Enum):
        CERTIFICATE_READ = "Certificate/key read error: {detail}"
        NO_KEYS_FOUND = "No keys found for client certificate"
        TOO_MANY_KEYS = "Too many keys found for client certificate (found {count})"

    def __init__(
        self, kind: ClientCertError.Kind, *, detail: str = "", count: int = 0
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.count = count
        super().__init__(kind.value.format(detail=detail, count=count))


def read_pem_items(data: bytes | str) -> list[tuple[str, bytes]]:
    """Return the ``(label, der_bytes)`` of every PEM section in ``data``, in order.

    Text outside sections is ignored. Raises ``ValueError`` for an unterminated
    section, a mismatched end marker or an invalid base64 body.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    items: list[tuple[str, bytes]] = []
    label: str | None = None
    body: list[bytes] = []
    for raw_line in bytes(data).splitlines():
        line = raw_line.strip()
        if label is None:
            if line.startswith(b"-----BEGIN ") and line.endswith(b"-----") and len(line) > 16:
                label = line[11:-5].decode("ascii", errors="replace")
                body = []
            continue
        if line.startswith(b"-----END ") and line.endswith(b"-----"):
            end_label = line[9:-5].decode("ascii", errors="replace")
            if end_label != label:
                raise ValueError(f"section end for {label!r} does not match {end_label!r}")
            try:
                der = base64.b64decode(b"".join(body), validate=True)
            except (binascii.Error, ValueError) as err:
                raise ValueError(f"invalid base64 in {label!r} section: {err}") from None
            items.append((label, der))
            label = None
            continue
        body.append(line)
    if label is not None:
        raise ValueError(f"section end \"-----END {label}-----\" missing")
    return items


@dataclass(frozen=True)
class ClientCertInfo:
    """A certificate chain together with exactly one private key."""

    certificates: tuple[bytes, ...]
    private_key: bytes = field(repr=False)

    @classmethod
    def from_pem(
        cls, certificate_bytes: bytes | str, certificate_key: bytes | str
    ) -> ClientCertInfo:
        """Build from PEM certificate data and PEM key data.

        Certificates and keys are collected from both inputs. Raises
        :class:`ClientCertError` unless exactly one private key is found.
        """
        try:
            items = read_pem_items(certificate_bytes) + read_pem_items(certificate_key)
        except ValueError as err:
            raise ClientCertError(
                ClientCertError.Kind.CERTIFICATE_READ, detail=str(err)
            ) from err

        certificates = tuple(der for label, der in items if label in _CERTIFICATE_LABELS)
        keys = [der for label, der in items if label in _KEY_LABELS]
        if not keys:
            raise ClientCertError(ClientCertError.Kind.NO_KEYS_FOUND)
        if len(keys) > 1:
            raise ClientCertError(ClientCertError.Kind.TOO_MANY_KEYS, count=len(keys))
        return cls(certificates, keys[0])

    def certs(self) -> list[bytes]:
        """Return the DER-encoded certificates."""
        return list(self.certificates)

    def key(self) -> bytes:
        """Return the DER-encoded private key."""
        return self.private_key