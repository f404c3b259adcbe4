"""In-memory object (KV) stores keyed by store name and object key."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from edgelocal.errors import KeyValidationError, ObjectStoreError

_MAX_KEY_BYTES = 1024
_FORBIDDEN_CHARACTERS = ("\r", "\n", "[", "]", "*", "?", "#")


def validate_key(key: str) -> None:
    """Raise :class:`KeyValidationError` if ``key`` is not a valid object key.

    Keys are 1 to 1024 bytes of UTF-8, may not start with
    ``.well-known/acme-challenge``, may not be ``.`` or ``..``, and may not
    contain carriage returns, line feeds, ``[``, ``]``, ``*``, ``?`` or ``#``.
    """
    size = len(key.encode("utf-8"))
    if size < 1:
        raise KeyValidationError("Keys for objects cannot be empty")
    if size > _MAX_KEY_BYTES:
        raise KeyValidationError("Keys for objects cannot be over 1024 bytes in size")
    if key.startswith(".well-known/acme-challenge"):
        raise KeyValidationError(
            "Keys for objects cannot start with `.well-known/acme-challenge`"
        )
    if key == "..":
        raise KeyValidationError("Keys for objects cannot be named `..`")
    if key == ".":
        raise KeyValidationError("Keys for objects cannot be named `.`")
    for character in _FORBIDDEN_CHARACTERS:
        if character in key:
            raise KeyValidationError(f"Keys for objects cannot contain a `{character}`")


@dataclass(frozen=True, order=True)
class ObjectStoreKey:
    """The name of an object store."""

    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", str(self.name))

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, order=True)
class ObjectKey:
    """A validated key of an object inside a store."""

    name: str

    def __post_init__(self) -> None:
        name = str(self.name)
        validate_key(name)
        object.__setattr__(self, "name", name)

    def __str__(self) -> str:
        return self.name


class ObjectStores:
    """A thread-safe collection of named object stores.

    Instances are shared by reference: every holder sees the same stores.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._stores: dict[ObjectStoreKey, dict[ObjectKey, bytes]] = {}

    def store_exists(self, store_name: str | ObjectStoreKey) -> bool:
        """Return whether a store of this name exists."""
        key = ObjectStoreKey(str(store_name))
        with self._lock:
            return key in self._stores

    def lookup(self, store_key: ObjectStoreKey, obj_key: ObjectKey) -> bytes:
        """Return the bytes stored under ``obj_key``.

        Raises :class:`ObjectStoreError` if the store or the object is missing.
        """
        with self._lock:
            store = self._stores.get(store_key)
            if store is None or obj_key not in store:
                raise ObjectStoreError()
            return store[obj_key]

    def insert_empty_store(self, store_key: ObjectStoreKey) -> None:
        """Create the store if it does not exist yet; existing contents are kept."""
        with self._lock:
            self._stores.setdefault(store_key, {})

    def insert(self, store_key: ObjectStoreKey, obj_key: ObjectKey, obj: bytes) -> None:
        """Store ``obj`` under ``obj_key``, creating the store if needed."""
        with self._lock:
            self._stores.setdefault(store_key, {})[obj_key] = bytes(obj)

    def delete(self, store_key: ObjectStoreKey, obj_key: ObjectKey) -> None:
        """Remove ``obj_key`` from the store if both exist; otherwise do nothing."""
        with self._lock:
            store = self._stores.get(store_key)
            if store is not None:
                store.pop(obj_key, None)

    def __repr__(self) -> str:
        with self._lock:
            names = sorted(str(key) for key in self._stores)
        return f"ObjectStores({names!r})"