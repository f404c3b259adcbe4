"""Dictionary (config store) definitions read from the manifest."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from edgelocal.errors import (
    DictionaryConfigError,
    DictionaryErrorKind,
    InvalidDictionaryDefinition,
)

DICTIONARY_ITEM_KEY_MAX_LEN = 256
DICTIONARY_ITEM_VALUE_MAX_LEN = 8000


@dataclass(frozen=True)
class InlineTomlDictionary:
    """A dictionary whose entries are written inline in the manifest."""

    entries: dict[str, str] = field(default_factory=dict)

    def contents(self) -> dict[str, str]:
        """Return a copy of the dictionary's entries."""
        return dict(self.entries)

    def is_json(self) -> bool:
        return False

    def file_path(self) -> Path | None:
        return None


@dataclass(frozen=True)
class JsonDictionary:
    """A dictionary backed by a JSON file, read again on every access."""

    file: Path

    def contents(self) -> dict[str, str]:
        """Read and validate the backing file's entries."""
        return read_json_dictionary(self.file)

    def is_json(self) -> bool:
        return True

    def file_path(self) -> Path | None:
        return self.file


Dictionary = InlineTomlDictionary | JsonDictionary


def validate_dictionary_contents(contents: Mapping[str, str]) -> None:
    """Raise :class:`DictionaryConfigError` if a key or value is too long."""
    for key, value in contents.items():
        if len(key) > DICTIONARY_ITEM_KEY_MAX_LEN:
            raise DictionaryConfigError(
                DictionaryErrorKind.DICTIONARY_ITEM_KEY_TOO_LONG,
                key=key,
                size=DICTIONARY_ITEM_KEY_MAX_LEN,
            )
        if len(value) > DICTIONARY_ITEM_VALUE_MAX_LEN:
            raise DictionaryConfigError(
                DictionaryErrorKind.DICTIONARY_ITEM_VALUE_TOO_LONG,
                key=key,
                size=DICTIONARY_ITEM_VALUE_MAX_LEN,
            )


def read_json_dictionary(path: str | Path) -> dict[str, str]:
    """Read a JSON object of string values from ``path`` and validate it."""
    try:
        data = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise DictionaryConfigError(DictionaryErrorKind.IO_ERROR, detail=str(err)) from err
    try:
        document = json.loads(data)
    except json.JSONDecodeError as err:
        raise DictionaryConfigError(DictionaryErrorKind.DICTIONARY_FILE_WRONG_FORMAT) from err
    if not isinstance(document, dict):
        raise DictionaryConfigError(DictionaryErrorKind.DICTIONARY_FILE_WRONG_FORMAT)

    contents: dict[str, str] = {}
    for key, value in document.items():
        if not isinstance(value, str):
            raise DictionaryConfigError(
                DictionaryErrorKind.DICTIONARY_ITEM_VALUE_WRONG_FORMAT, key=key
            )
        contents[key] = value
    validate_dictionary_contents(contents)
    return contents


def _process_inline_toml(toml: dict[str, Any]) -> InlineTomlDictionary:
    if "contents" not in toml:
        raise DictionaryConfigError(DictionaryErrorKind.MISSING_CONTENTS)
    table = toml.pop("contents")
    if not isinstance(table, Mapping):
        raise DictionaryConfigError(DictionaryErrorKind.INVALID_CONTENTS_TYPE)
    contents: dict[str, str] = {}
    for key, value in table.items():
        if not isinstance(value, str):
            raise DictionaryConfigError(DictionaryErrorKind.INVALID_INLINE_ENTRY_TYPE)
        contents[key] = value
    validate_dictionary_contents(contents)
    return InlineTomlDictionary(contents)


def _process_json(toml: dict[str, Any]) -> JsonDictionary:
    if "file" not in toml:
        raise DictionaryConfigError(DictionaryErrorKind.MISSING_FILE)
    file = toml.pop("file")
    if not isinstance(file, str):
        raise DictionaryConfigError(DictionaryErrorKind.INVALID_FILE_ENTRY)
    if not file:
        raise DictionaryConfigError(DictionaryErrorKind.EMPTY_FILE_ENTRY)
    path = Path(file)
    read_json_dictionary(path)
    return JsonDictionary(path)


def _process_entry(entry: Any) -> Dictionary:
    if not isinstance(entry, Mapping):
        raise DictionaryConfigError(DictionaryErrorKind.INVALID_ENTRY_TYPE)
    toml = dict(entry)

    if "format" not in toml:
        raise DictionaryConfigError(DictionaryErrorKind.MISSING_FORMAT)
    format_name = toml.pop("format")
    if not isinstance(format_name, str):
        raise DictionaryConfigError(DictionaryErrorKind.INVALID_FORMAT_ENTRY)

    if format_name == "inline-toml":
        dictionary: Dictionary = _process_inline_toml(toml)
    elif format_name == "json":
        dictionary = _process_json(toml)
    elif format_name == "":
        raise DictionaryConfigError(DictionaryErrorKind.EMPTY_FORMAT_ENTRY)
    else:
        raise DictionaryConfigError(
            DictionaryErrorKind.INVALID_DICTIONARY_FORMAT, format=format_name
        )

    if toml:
        raise DictionaryConfigError(DictionaryErrorKind.UNRECOGNIZED_KEY, key=min(toml))
    return dictionary


def parse_dictionaries(table: Mapping[str, Any]) -> dict[str, Dictionary]:
    """Parse the ``dictionaries`` table into dictionaries keyed by name.

    Raises :class:`InvalidDictionaryDefinition` naming the first invalid entry.
    """
    dictionaries: dict[str, Dictionary] = {}
    for name in sorted(table):
        try:
            dictionaries[name] = _process_entry(table[name])
        except DictionaryConfigError as err:
            raise InvalidDictionaryDefinition(name, err) from err
    return dictionaries