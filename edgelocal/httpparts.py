"""Minimal HTTP request pieces: URIs, downstream canonicalisation, header filtering."""

from __future__ import annotations

import dataclasses
import ipaddress
import re
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from enum import Enum

_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*\Z")
_PORT_RE = re.compile(r"[0-9]+\Z")
_URI_FORBIDDEN = frozenset(' "<>\\^`{|}')
_AUTHORITY_FORBIDDEN = frozenset("/?#")
_FRAMING_HEADERS = frozenset({"content-length", "transfer-encoding"})


class DownstreamRequestError(ValueError):
    """The incoming request cannot be turned into an absolute request."""

    class Kind(Enum):
        INVALID_HOST = "Request HOST header is missing or invalid"
        INVALID_URL = "Request URL is invalid"

    def __init__(self, kind: DownstreamRequestError.Kind) -> None:
        self.kind = kind
        super().__init__(kind.value)


def _check_characters(text: str, what: str) -> None:
    for character in text:
        if ord(character) <= 0x20 or ord(character) == 0x7F or character in _URI_FORBIDDEN:
            raise ValueError(f"invalid character {character!r} in {what}")


def _validate_authority(authority: str) -> None:
    if not authority:
        raise ValueError("empty authority")
    _check_characters(authority, "authority")
    if any(character in _AUTHORITY_FORBIDDEN for character in authority):
        raise ValueError("invalid character in authority")
    hostport = authority.rpartition("@")[2]
    if hostport.startswith("["):
        close = hostport.find("]")
        if close < 0:
            raise ValueError("unterminated IPv6 literal in authority")
        try:
            ipaddress.IPv6Address(hostport[1:close])
        except ValueError as err:
            raise ValueError(f"invalid IPv6 literal in authority: {err}") from None
        rest = hostport[close + 1:]
        if rest and not (rest.startswith(":") and _PORT_RE.match(rest[1:])):
            raise ValueError("invalid port in authority")
        return
    if hostport.count(":") > 1:
        raise ValueError("invalid authority")
    host, sep, port = hostport.partition(":")
    if not host:
        raise ValueError("empty host in authority")
    if sep and not _PORT_RE.match(port):
        raise ValueError("invalid port in authority")


def _strip_fragment(text: str) -> str:
    return text.partition("#")[0]


@dataclass(frozen=True)
class Uri:
    """A request target: absolute, origin-form (path only) or authority-form."""

    scheme: str | None = None
    authority: str | None = None
    path_and_query: str | None = None

    def __post_init__(self) -> None:
        if self.scheme is None and self.authority is None and self.path_and_query is None:
            raise ValueError("empty uri")
        if self.scheme is not None:
            if not _SCHEME_RE.match(self.scheme):
                raise ValueError(f"invalid scheme {self.scheme!r}")
            if self.authority is None:
                raise ValueError("scheme given without an authority")
        if self.authority is not None:
            _validate_authority(self.authority)
            if self.scheme is None and self.path_and_query is not None:
                raise ValueError("authority and path given without a scheme")
        if self.path_and_query is not None:
            _check_characters(self.path_and_query, "path")
            if self.path_and_query == "*":
                if self.scheme is not None:
                    raise ValueError("asterisk form cannot carry a scheme")
            elif not self.path_and_query.startswith("/"):
                raise ValueError("path must start with '/'")

    @classmethod
    def parse(cls, text: str) -> Uri:
        """Parse ``text`` into a :class:`Uri`; raise ``ValueError`` if it is invalid."""
        if not text:
            raise ValueError("empty uri")
        if text == "*":
            return cls(path_and_query="*")
        if text.startswith("/"):
            return cls(path_and_query=_strip_fragment(text))
        scheme, sep, rest = text.partition("://")
        if sep:
            end = len(rest)
            for delimiter in "/?#":
                position = rest.find(delimiter)
                if position >= 0:
                    end = min(end, position)
            authority = rest[:end]
            path = _strip_fragment(rest[end:])
            if not path.startswith("/"):
                path = "/" + path
            return cls(scheme=scheme, authority=authority, path_and_query=path)
        return cls(authority=text)

    def host(self) -> str | None:
        """Return the host part of the authority, without user info or port."""
        if self.authority is None:
            return None
        hostport = self.authority.rpartition("@")[2]
        if hostport.startswith("["):
            return hostport[: hostport.index("]") + 1]
        return hostport.partition(":")[0]

    def __str__(self) -> str:
        if self.scheme is not None:
            return f"{self.scheme}://{self.authority}{self.path_and_query or '/'}"
        if self.authority is not None:
            return self.authority
        return self.path_and_query or ""


def validate_header_value(value: str | bytes) -> str | bytes:
    """Return ``value`` if it is a valid HTTP header value; raise ``ValueError`` otherwise.

    Control characters other than horizontal tab are not allowed.
    """
    data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    for byte in data:
        if (byte < 0x20 and byte != 0x09) or byte == 0x7F:
            raise ValueError("failed to parse header value")
    return value


@dataclass
class Request:
    """An HTTP request with headers kept as a name-to-value mapping."""

    uri: Uri
    method: str = "GET"
    headers: dict[str, str | bytes] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        if isinstance(self.uri, str):
            self.uri = Uri.parse(self.uri)

    def header(self, name: str) -> str | bytes | None:
        """Return the value of a header, matching the name case-insensitively."""
        wanted = name.lower()
        return next(
            (value for key, value in self.headers.items() if key.lower() == wanted), None
        )


def prepare_request(req: Request) -> Request:
    """Return ``req`` with an absolute URI whose authority is the request's host.

    The host comes from the ``Host`` header if present, otherwise from the
    URI's authority. The scheme defaults to ``http``.
    """
    host_header = req.header("host")
    if host_header is not None:
        if isinstance(host_header, str):
            http_host = host_header
        else:
            try:
                http_host = bytes(host_header).decode("utf-8")
            except UnicodeDecodeError:
                raise DownstreamRequestError(
                    DownstreamRequestError.Kind.INVALID_HOST
                ) from None
    else:
        http_host = req.uri.host()
        if http_host is None:
            raise DownstreamRequestError(DownstreamRequestError.Kind.INVALID_HOST)

    if req.uri.path_and_query is None:
        raise DownstreamRequestError(DownstreamRequestError.Kind.INVALID_URL)
    try:
        uri = Uri(
            scheme=req.uri.scheme or "http",
            authority=http_host,
            path_and_query=req.uri.path_and_query,
        )
    except ValueError:
        raise DownstreamRequestError(DownstreamRequestError.Kind.INVALID_URL) from None
    return dataclasses.replace(req, uri=uri, headers=dict(req.headers))


def filter_outgoing_headers(headers: MutableMapping[str, object]) -> None:
    """Remove framing headers (``Content-Length``, ``Transfer-Encoding``) in place."""
    for name in [key for key in headers if key.lower() in _FRAMING_HEADERS]:
        del headers[name]