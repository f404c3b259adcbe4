"""Secret store definitions read from the manifest."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from edgelocal.errors import (
    InvalidSecretStoreDefinition,
    SecretStoreConfigError,
    SecretStoreConfigErrorKind,
)
from edgelocal.secret_store import SecretStore, SecretStores

_Kind = SecretStoreConfigErrorKind
_MAX_NAME_BYTES = 255
_EXTRA_NAME_CHARACTERS = frozenset("_-.")


def is_valid_name(name: str) -> bool:
    """Return whether ``name`` may name a secret store or a secret.

    Names are 1 to 255 bytes of ASCII letters, digits, ``-``, ``_`` and ``.``.
    """
    return (
        bool(name)
        and len(name.encode("utf-8")) <= _MAX_NAME_BYTES
        and all(
            (character.isascii() and character.isalnum()) or character in _EXTRA_NAME_CHARACTERS
            for character in name
        )
    )


def _invalid(store: str, kind: SecretStoreConfigErrorKind, **fields: Any) -> InvalidSecretStoreDefinition:
    return InvalidSecretStoreDefinition(store, SecretStoreConfigError(kind, **fields))


def _read_item(store: str, item: Any) -> tuple[str, bytes]:
    if not isinstance(item, Mapping):
        raise _invalid(store, _Kind.NOT_A_TABLE)
    if "key" not in item:
        raise _invalid(store, _Kind.NO_KEY)
    key = item["key"]
    if not isinstance(key, str):
        raise _invalid(store, _Kind.KEY_NOT_A_STRING)
    if not is_valid_name(key):
        raise _invalid(store, _Kind.INVALID_SECRET_NAME, name=key)

    has_file = "file" in item
    has_data = "data" in item
    if not has_file and not has_data:
        raise _invalid(store, _Kind.NO_FILE_OR_DATA, key=key)
    if has_file and has_data:
        raise _invalid(store, _Kind.FILE_AND_DATA, key=key)

    if has_file:
        file = item["file"]
        if not isinstance(file, str):
            raise _invalid(store, _Kind.FILE_NOT_A_STRING, key=key)
        try:
            return key, Path(file).read_bytes()
        except OSError as err:
            raise _invalid(store, _Kind.IO_ERROR, detail=str(err)) from err

    data = item["data"]
    if not isinstance(data, str):
        raise _invalid(store, _Kind.DATA_NOT_A_STRING, key=key)
    return key, data.encode("utf-8")


def parse_secret_stores(table: Mapping[str, Any]) -> SecretStores:
    """Parse the ``secret_stores`` table into :class:`SecretStores`.

    Raises :class:`InvalidSecretStoreDefinition` naming the store of the first
    invalid definition.
    """
    stores = SecretStores()
    for store_name in sorted(table):
        if not is_valid_name(store_name):
            raise _invalid(store_name, _Kind.INVALID_SECRET_STORE_NAME, name=store_name)
        items = table[store_name]
        if not isinstance(items, list):
            raise _invalid(store_name, _Kind.NOT_AN_ARRAY)
        store = SecretStore()
        for item in items:
            key, payload = _read_item(store_name, item)
            store.add_secret(key, payload)
        stores.add_store(store_name, store)
    return stores