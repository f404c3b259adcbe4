import json
import tomllib

import pytest

from edgelocal.config.dictionaries import (
    DICTIONARY_ITEM_KEY_MAX_LEN,
    DICTIONARY_ITEM_VALUE_MAX_LEN,
    InlineTomlDictionary,
    JsonDictionary,
    parse_dictionaries,
    read_json_dictionary,
    validate_dictionary_contents,
)
from edgelocal.errors import (
    DictionaryConfigError,
    DictionaryErrorKind,
    InvalidDictionaryDefinition,
)


def _read(text):
    return parse_dictionaries(tomllib.loads(text)["dictionaries"])


def _expect_kind(text, kind):
    with pytest.raises(InvalidDictionaryDefinition) as info:
        _read(text)
    assert info.value.err.kind is kind
    return info.value


@pytest.fixture
def empty_json(tmp_path):
    path = tmp_path / "secrets.json"
    path.write_text("{}\n")
    return path


def test_json_dictionary_configuration_can_be_read(tmp_path):
    path = tmp_path / "a.json"
    path.write_text("{}\n")
    dictionaries = _read(
        f"""
        [dictionaries.a]
        file = '{path}'
        format = "json"
        """
    )
    dictionary = dictionaries["a"]
    assert dictionary.file_path() == path
    assert dictionary.is_json() is True
    assert dictionary.contents() == {}


def test_dictionary_configs_have_a_valid_format():
    err = _expect_kind(
        """
        [dictionaries.a]
        format = "foo"
        contents = { apple = "fruit", potato = "vegetable" }
        """,
        DictionaryErrorKind.INVALID_DICTIONARY_FORMAT,
    )
    assert err.err.fields["format"] == "foo"
    assert err.name == "a"


def test_dictionary_configs_must_use_toml_tables():
    _expect_kind(
        """
        [dictionaries]
        "thing" = "stuff"
        """,
        DictionaryErrorKind.INVALID_ENTRY_TYPE,
    )


def test_dictionary_configs_cannot_contain_unrecognized_keys(empty_json):
    err = _expect_kind(
        f"""
        [dictionaries]
        thing = {{ file = '{empty_json}', format = "json", shrimp = true }}
        """,
        DictionaryErrorKind.UNRECOGNIZED_KEY,
    )
    assert err.err.fields["key"] == "shrimp"


def test_dictionary_configs_must_provide_a_file():
    _expect_kind(
        """
        [dictionaries]
        thing = {format = "json"}
        """,
        DictionaryErrorKind.MISSING_FILE,
    )


def test_json_dictionary_configs_must_provide_a_format(empty_json):
    _expect_kind(
        f"""
        [dictionaries]
        "thing" = {{ file = '{empty_json}' }}
        """,
        DictionaryErrorKind.MISSING_FORMAT,
    )


def test_dictionary_configs_must_provide_file_as_a_string():
    _expect_kind(
        """
        [dictionaries]
        "thing" = { file = 3, format = "json" }
        """,
        DictionaryErrorKind.INVALID_FILE_ENTRY,
    )


def test_dictionary_configs_must_provide_a_non_empty_file():
    _expect_kind(
        """
        [dictionaries]
        "thing" = { file = "", format = "json" }
        """,
        DictionaryErrorKind.EMPTY_FILE_ENTRY,
    )


def test_dictionary_configs_must_provide_format_as_a_string():
    _expect_kind(
        """
        [dictionaries]
        "thing" = { format = 3}
        """,
        DictionaryErrorKind.INVALID_FORMAT_ENTRY,
    )


def test_dictionary_configs_must_provide_a_non_empty_format():
    _expect_kind(
        """
        [dictionaries]
        "thing" = { format = "" }
        """,
        DictionaryErrorKind.EMPTY_FORMAT_ENTRY,
    )


def test_valid_dictionary_config_with_format_set_to_json(empty_json):
    dictionaries = _read(
        f"""
        [dictionaries]
        "thing" = {{ file = '{empty_json}', format = "json" }}
        """
    )
    assert dictionaries["thing"] == JsonDictionary(empty_json)


def test_valid_inline_toml_dictionaries_can_be_parsed():
    dictionaries = _read(
        """
        [dictionaries.inline_toml_example]
        format = "inline-toml"
        contents = { apple = "fruit", potato = "vegetable" }
        """
    )
    dictionary = dictionaries["inline_toml_example"]
    assert dictionary.contents() == {"apple": "fruit", "potato": "vegetable"}
    assert dictionary.is_json() is False
    assert dictionary.file_path() is None


def test_inline_dictionary_configs_must_provide_a_format():
    _expect_kind(
        """
        [dictionaries.missing_format]
        contents = { apple = "fruit", potato = "vegetable" }
        """,
        DictionaryErrorKind.MISSING_FORMAT,
    )


def test_dictionary_configs_must_provide_contents():
    _expect_kind(
        """
        [dictionaries.missing_contents]
        format = "inline-toml"
        """,
        DictionaryErrorKind.MISSING_CONTENTS,
    )


def test_inline_contents_must_be_a_table():
    _expect_kind(
        """
        [dictionaries.a]
        format = "inline-toml"
        contents = "apple"
        """,
        DictionaryErrorKind.INVALID_CONTENTS_TYPE,
    )


def test_inline_values_must_be_strings():
    _expect_kind(
        """
        [dictionaries.a]
        format = "inline-toml"
        contents = { apple = 1 }
        """,
        DictionaryErrorKind.INVALID_INLINE_ENTRY_TYPE,
    )


def test_inline_contents_returns_a_copy():
    dictionary = InlineTomlDictionary({"apple": "fruit"})
    copy = dictionary.contents()
    copy["pear"] = "fruit"
    assert dictionary.contents() == {"apple": "fruit"}


def test_json_dictionary_reads_file_on_each_access(tmp_path):
    path = tmp_path / "d.json"
    path.write_text(json.dumps({"apple": "fruit"}))
    dictionary = _read(
        f"""
        [dictionaries.d]
        file = '{path}'
        format = "json"
        """
    )["d"]
    assert dictionary.contents() == {"apple": "fruit"}
    path.write_text(json.dumps({"potato": "vegetable"}))
    assert dictionary.contents() == {"potato": "vegetable"}


def test_read_json_dictionary_rejects_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(DictionaryConfigError) as info:
        read_json_dictionary(path)
    assert info.value.kind is DictionaryErrorKind.DICTIONARY_FILE_WRONG_FORMAT


def test_read_json_dictionary_rejects_non_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]")
    with pytest.raises(DictionaryConfigError) as info:
        read_json_dictionary(path)
    assert info.value.kind is DictionaryErrorKind.DICTIONARY_FILE_WRONG_FORMAT


def test_read_json_dictionary_rejects_non_string_values(tmp_path):
    path = tmp_path / "values.json"
    path.write_text(json.dumps({"count": 3}))
    with pytest.raises(DictionaryConfigError) as info:
        read_json_dictionary(path)
    assert info.value.kind is DictionaryErrorKind.DICTIONARY_ITEM_VALUE_WRONG_FORMAT
    assert info.value.fields["key"] == "count"


def test_read_json_dictionary_missing_file(tmp_path):
    with pytest.raises(DictionaryConfigError) as info:
        read_json_dictionary(tmp_path / "missing.json")
    assert info.value.kind is DictionaryErrorKind.IO_ERROR


def test_limits_are_reported_in_errors():
    with pytest.raises(DictionaryConfigError) as key_info:
        validate_dictionary_contents({"k" * (DICTIONARY_ITEM_KEY_MAX_LEN + 1): "v"})
    assert key_info.value.fields["size"] == 256
    with pytest.raises(DictionaryConfigError) as value_info:
        validate_dictionary_contents({"k": "v" * (DICTIONARY_ITEM_VALUE_MAX_LEN + 1)})
    assert value_info.value.fields["size"] == 8000


def test_key_at_limit_is_accepted_and_over_limit_rejected():
    validate_dictionary_contents({"k" * 256: "v", "a": "v" * 8000})
    with pytest.raises(DictionaryConfigError) as info:
        validate_dictionary_contents({"k" * 257: "v"})
    assert info.value.kind is DictionaryErrorKind.DICTIONARY_ITEM_KEY_TOO_LONG
    assert info.value.fields["size"] == 256


def test_value_over_limit_rejected():
    with pytest.raises(DictionaryConfigError) as info:
        validate_dictionary_contents({"key": "v" * 8001})
    assert info.value.kind is DictionaryErrorKind.DICTIONARY_ITEM_VALUE_TOO_LONG
    assert str(info.value) == "Item value named 'key' is too long, max size is 8000"


def test_lengths_count_characters_not_bytes():
    validate_dictionary_contents({"é" * 256: "ü" * 8000})
    with pytest.raises(DictionaryConfigError):
        validate_dictionary_contents({"é" * 257: "v"})
    assert len("é" * 256) == DICTIONARY_ITEM_KEY_MAX_LEN


def test_oversized_inline_value_is_rejected_at_parse_time():
    with pytest.raises(InvalidDictionaryDefinition) as info:
        parse_dictionaries(
            {"a": {"format": "inline-toml", "contents": {"key": "v" * 8001}}}
        )
    assert info.value.err.kind is DictionaryErrorKind.DICTIONARY_ITEM_VALUE_TOO_LONG