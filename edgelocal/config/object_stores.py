"""Object (KV) store definitions read from the manifest."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from edgelocal.errors import (
    InvalidObjectStoreDefinition,
    KeyValidationError,
    ObjectStoreConfigError,
    ObjectStoreConfigErrorKind,
)
from edgelocal.object_store import ObjectKey, ObjectStoreKey, ObjectStores

_Kind = ObjectStoreConfigErrorKind


def _invalid(store: str, kind: ObjectStoreConfigErrorKind, **fields: Any) -> InvalidObjectStoreDefinition:
    return InvalidObjectStoreDefinition(store, ObjectStoreConfigError(kind, **fields))


def _read_item(store: str, item: Any) -> tuple[ObjectKey, bytes]:
    if not isinstance(item, Mapping):
        raise _invalid(store, _Kind.NOT_A_TABLE)
    if "key" not in item:
        raise _invalid(store, _Kind.NO_KEY)
    key = item["key"]
    if not isinstance(key, str):
        raise _invalid(store, _Kind.KEY_NOT_A_STRING)

    # "path" is the older name of the "file" field and is still accepted.
    if "file" in item:
        file: Any = item["file"]
        has_file = True
    elif "path" in item:
        file = item["path"]
        has_file = True
    else:
        file = None
        has_file = False
    has_data = "data" in item

    if not has_file and not has_data:
        raise _invalid(store, _Kind.NO_FILE_OR_DATA, key=key)
    if has_file and has_data:
        raise _invalid(store, _Kind.FILE_AND_DATA, key=key)

    if has_file:
        if not isinstance(file, str):
            raise _invalid(store, _Kind.FILE_NOT_A_STRING, key=key)
        try:
            payload = Path(file).read_bytes()
        except OSError as err:
            raise _invalid(store, _Kind.IO_ERROR, detail=str(err)) from err
    else:
        data = item["data"]
        if not isinstance(data, str):
            raise _invalid(store, _Kind.DATA_NOT_A_STRING, key=key)
        payload = data.encode("utf-8")

    try:
        obj_key = ObjectKey(key)
    except KeyValidationError as err:
        raise _invalid(store, _Kind.KEY_VALIDATION_ERROR, detail=str(err)) from err
    return obj_key, payload


def parse_object_stores(table: Mapping[str, Any]) -> ObjectStores:
    """Parse the ``object_stores`` table into :class:`ObjectStores`.

    Each store is an array of tables holding a ``key`` and either ``data`` or
    ``file``. Raises :class:`InvalidObjectStoreDefinition` naming the store
    of the first invalid definition.
    """
    stores = ObjectStores()
    for store_name in sorted(table):
        items = table[store_name]
        if not isinstance(items, list):
            raise _invalid(store_name, _Kind.NOT_AN_ARRAY)
        store_key = ObjectStoreKey(store_name)
        if not items:
            stores.insert_empty_store(store_key)
            continue
        for item in items:
            obj_key, payload = _read_item(store_name, item)
            stores.insert(store_key, obj_key, payload)
    return stores