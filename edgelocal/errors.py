"""Error types raised while loading and validating local server configuration."""

from __future__ import annotations

from enum import Enum, unique
from typing import Any, ClassVar


class FastlyConfigError(Exception):
    """Base class for errors raised while reading a ``fastly.toml`` manifest."""


class ConfigIoError(FastlyConfigError):
    """The manifest file could not be read."""

    def __init__(self, path: Any, err: BaseException) -> None:
        self.path = str(path)
        self.err = err
        super().__init__(f"error reading '{self.path}': {err}")


class InvalidFastlyToml(FastlyConfigError):
    """The manifest is not valid TOML or has fields of the wrong shape."""

    def __init__(self, err: Any) -> None:
        self.err = err
        super().__init__(f"error parsing `fastly.toml`: {err}")


class SectionConfigError(Exception):
    """An error found while validating one section of the local server configuration.

    ``kind`` is a member of the section's error-kind enum; ``fields`` holds the
    values substituted into that kind's message template.
    """

    kind_type: ClassVar[type[Enum]] = Enum

    def __init__(self, kind: Enum, **fields: Any) -> None:
        if not isinstance(kind, self.kind_type):
            raise TypeError(
                f"{type(self).__name__} expects a {self.kind_type.__name__}, got {kind!r}"
            )
        try:
            message = kind.value.format(**fields)
        except KeyError as missing:
            raise TypeError(f"{kind.name} requires the field {missing}") from None
        self.kind = kind
        self.fields = dict(fields)
        super().__init__(message)

    def __repr__(self) -> str:
        extra = "".join(f", {name}={value!r}" for name, value in self.fields.items())
        return f"{type(self).__name__}({self.kind.name}{extra})"


@unique
class BackendErrorKind(Enum):
    INVALID_ENTRY_TYPE = "definition was not provided as a TOML table"
    INVALID_OVERRIDE_HOST = "invalid override_host: {detail}"
    EMPTY_OVERRIDE_HOST = "'override_host' field is empty"
    INVALID_OVERRIDE_HOST_ENTRY = "'override_host' field was not a string"
    EMPTY_CERT_HOST = "'cert_host' field is empty"
    INVALID_CERT_HOST_ENTRY = "'cert_host' field was not a string"
    EMPTY_CA_CERT = "'ca_certificate' field is empty"
    INVALID_CA_CERT_ENTRY = "'ca_certificate' field was invalid: {detail}"
    INVALID_USE_SNI_ENTRY = "'use_sni' field was not a boolean"
    INVALID_GRPC_ENTRY = "'grpc' field was not a boolean"
    INVALID_URL = "invalid url: {detail}"
    INVALID_URL_ENTRY = "'url' field was not a string"
    MISSING_DEFAULT = "no default definition provided"
    MISSING_URL = "missing 'url' field"
    UNRECOGNIZED_KEY = "unrecognized key '{key}'"


class BackendConfigError(SectionConfigError):
    """A backend definition is invalid."""

    kind_type = BackendErrorKind


@unique
class DictionaryErrorKind(Enum):
    IO_ERROR = "{detail}"
    INVALID_CONTENTS_TYPE = "'contents' was not provided as a TOML table"
    INVALID_INLINE_ENTRY_TYPE = "inline dictionary value was not a string"
    INVALID_ENTRY_TYPE = "definition was not provided as a TOML table"
    INVALID_NAME_ENTRY = "'name' field was not a string"
    INVALID_DICTIONARY_FORMAT = (
        "'{format}' is not a valid format for the dictionary. "
        "Supported format(s) are: 'inline-toml', 'json'."
    )
    EMPTY_FILE_ENTRY = "'file' field is empty"
    EMPTY_FORMAT_ENTRY = "'format' field is empty"
    INVALID_FILE_ENTRY = "'file' field was not a string"
    INVALID_FORMAT_ENTRY = "'format' field was not a string"
    MISSING_CONTENTS = "missing 'contents' field"
    MISSING_DEFAULT = "no default definition provided"
    MISSING_NAME = "missing 'name' field"
    MISSING_FILE = "missing 'file' field"
    MISSING_FORMAT = "missing 'format' field"
    UNRECOGNIZED_KEY = "unrecognized key '{key}'"
    DICTIONARY_ITEM_KEY_TOO_LONG = "Item key named '{key}' is too long, max size is {size}"
    DICTIONARY_COUNT_TOO_LONG = "too many items, max amount is {size}"
    DICTIONARY_ITEM_VALUE_WRONG_FORMAT = (
        "Item value under key named '{key}' is of the wrong format. "
        "The value is expected to be a JSON String"
    )
    DICTIONARY_ITEM_VALUE_TOO_LONG = "Item value named '{key}' is too long, max size is {size}"
    DICTIONARY_FILE_WRONG_FORMAT = (
        "The file is of the wrong format. The file is expected to contain a single JSON Object"
    )


class DictionaryConfigError(SectionConfigError):
    """A dictionary (config store) definition is invalid."""

    kind_type = DictionaryErrorKind


@unique
class DeviceDetectionErrorKind(Enum):
    IO_ERROR = "{detail}"
    INVALID_ENTRY_TYPE = "definition was not provided as a TOML table"
    MISSING_FILE = "missing 'file' field"
    EMPTY_FILE_ENTRY = "'file' field is empty"
    MISSING_USER_AGENTS = "missing 'user_agents' field"
    INVALID_INLINE_ENTRY_TYPE = "inline device detection value was not a string"
    INVALID_FILE_ENTRY = "'file' field was not a string"
    INVALID_USER_AGENTS_TYPE = "'user_agents' was not provided as a TOML table"
    UNRECOGNIZED_KEY = "unrecognized key '{key}'"
    MISSING_FORMAT = "missing 'format' field"
    INVALID_FORMAT_ENTRY = "'format' field was not a string"
    INVALID_MAPPING_FORMAT = (
        "'{format}' is not a valid format for the device detection mapping. "
        "Supported format(s) are: 'inline-toml', 'json'."
    )
    FILE_WRONG_FORMAT = (
        "The file is of the wrong format. The file is expected to contain a single JSON Object"
    )
    EMPTY_FORMAT_ENTRY = "'format' field is empty"
    ITEM_VALUE_WRONG_FORMAT = (
        "Item value under key named '{key}' is of the wrong format. "
        "The value is expected to be a JSON String"
    )


class DeviceDetectionConfigError(SectionConfigError):
    """The device detection mapping is invalid."""

    kind_type = DeviceDetectionErrorKind


@unique
class GeolocationErrorKind(Enum):
    IO_ERROR = "{detail}"
    INVALID_ENTRY_TYPE = "definition was not provided as a TOML table"
    MISSING_FILE = "missing 'file' field"
    EMPTY_FILE_ENTRY = "'file' field is empty"
    MISSING_ADDRESSES = "missing 'addresses' field"
    INVALID_INLINE_ENTRY_TYPE = "inline geolocation value was not a string"
    INVALID_FILE_ENTRY = "'file' field was not a string"
    INVALID_ADDRESSES_TYPE = "'addresses' was not provided as a TOML table"
    UNRECOGNIZED_KEY = "unrecognized key '{key}'"
    MISSING_FORMAT = "missing 'format' field"
    INVALID_FORMAT_ENTRY = "'format' field was not a string"
    INVALID_ADDRESS_ENTRY = "IP address not valid: '{detail}'"
    INVALID_MAPPING_FORMAT = (
        "'{format}' is not a valid format for the geolocation mapping. "
        "Supported format(s) are: 'inline-toml', 'json'."
    )
    FILE_WRONG_FORMAT = (
        "The file is of the wrong format. The file is expected to contain a single JSON Object"
    )
    EMPTY_FORMAT_ENTRY = "'format' field is empty"
    ITEM_VALUE_WRONG_FORMAT = (
        "Item value under key named '{key}' is of the wrong format. "
        "The value is expected to be a JSON String"
    )


class GeolocationConfigError(SectionConfigError):
    """The geolocation mapping is invalid."""

    kind_type = GeolocationErrorKind


@unique
class ObjectStoreConfigErrorKind(Enum):
    IO_ERROR = "{detail}"
    FILE_AND_DATA = (
        "The `file` and `data` keys for the object `{key}` are set. Only one can be used."
    )
    NO_FILE_OR_DATA = "The `file` or `data` key for the object `{key}` is not set. One must be used."
    DATA_NOT_A_STRING = "The `data` value for the object `{key}` is not a string."
    FILE_NOT_A_STRING = "The `file` value for the object `{key}` is not a string."
    NO_KEY = "The `key` key for an object is not set. It must be used."
    KEY_NOT_A_STRING = "The `key` value for an object is not a string."
    NOT_AN_ARRAY = "There is no array of objects for the given store."
    NOT_A_TABLE = "There is an object in the given store that is not a table of keys."
    OBJECT_STORE_ERROR = "There was an error when manipulating the ObjectStore: {detail}."
    KEY_VALIDATION_ERROR = "Invalid `key` value used: {detail}."


class ObjectStoreConfigError(SectionConfigError):
    """An object (KV) store definition is invalid."""

    kind_type = ObjectStoreConfigErrorKind


@unique
class SecretStoreConfigErrorKind(Enum):
    IO_ERROR = "{detail}"
    FILE_AND_DATA = (
        "The `file` and `data` keys for the object `{key}` are set. Only one can be used."
    )
    NO_FILE_OR_DATA = "The `file` or `data` key for the object `{key}` is not set. One must be used."
    DATA_NOT_A_STRING = "The `data` value for the object `{key}` is not a string."
    FILE_NOT_A_STRING = "The `file` value for the object `{key}` is not a string."
    NO_KEY = "The `key` key for an object is not set. It must be used."
    KEY_NOT_A_STRING = "The `key` value for an object is not a string."
    NOT_AN_ARRAY = "There is no array of objects for the given store."
    NOT_A_TABLE = "There is an object in the given store that is not a table of keys."
    INVALID_SECRET_STORE_NAME = "Invalid secret store name: {name}"
    INVALID_SECRET_NAME = "Invalid secret name: {name}"


class SecretStoreConfigError(SectionConfigError):
    """A secret store definition is invalid."""

    kind_type = SecretStoreConfigErrorKind


class InvalidDefinitionError(FastlyConfigError):
    """A named definition in the manifest failed validation."""

    section_error: ClassVar[type[SectionConfigError]] = SectionConfigError

    def __init__(self, name: str, err: SectionConfigError) -> None:
        if not isinstance(err, self.section_error):
            raise TypeError(
                f"{type(self).__name__} wraps a {self.section_error.__name__}, got {err!r}"
            )
        self.name = name
        self.err = err
        self.__cause__ = err
        super().__init__(f"invalid configuration for '{name}': {err}")


class InvalidBackendDefinition(InvalidDefinitionError):
    section_error = BackendConfigError


class InvalidDictionaryDefinition(InvalidDefinitionError):
    section_error = DictionaryConfigError


class InvalidDeviceDetectionDefinition(InvalidDefinitionError):
    section_error = DeviceDetectionConfigError


class InvalidGeolocationDefinition(InvalidDefinitionError):
    section_error = GeolocationConfigError


class InvalidObjectStoreDefinition(InvalidDefinitionError):
    section_error = ObjectStoreConfigError


class InvalidSecretStoreDefinition(InvalidDefinitionError):
    section_error = SecretStoreConfigError


class KeyValidationError(ValueError):
    """An object store key breaks the naming rules."""


class ObjectStoreError(LookupError):
    """An object, or the store holding it, could not be found.

    With no ``store`` the object itself was missing; with a ``store`` name the
    store does not exist.
    """

    def __init__(self, store: str | None = None) -> None:
        self.store = store
        if store is None:
            message = "The object was not in the store"
        else:
            message = f"Unknown object-store: {store}"
        super().__init__(message)