import base64
import json
import textwrap
import tomllib

import pytest

from edgelocal.config.backends import Backend, parse_backends, parse_ca_certificates
from edgelocal.errors import BackendConfigError, BackendErrorKind, InvalidBackendDefinition


def _pem_certificate(body: bytes) -> str:
    encoded = base64.b64encode(body).decode("ascii")
    lines = "\n".join(textwrap.wrap(encoded, 64))
    return f"-----BEGIN CERTIFICATE-----\n{lines}\n-----END CERTIFICATE-----\n"


CERT_BODY = b"placeholder certificate body used only for testing" * 3
CERT_PEM = _pem_certificate(CERT_BODY)


def _read(text):
    return parse_backends(tomllib.loads(text)["backends"])


def _expect_kind(text, kind):
    with pytest.raises(InvalidBackendDefinition) as info:
        _read(text)
    assert info.value.err.kind is kind
    return info.value


def test_simple_backend_configurations_can_be_read():
    backends = _read(
        """
        [backends.dog]
        url = "http://localhost:7676/dog-mocks"

        [backends."shark.server"]
        url = "http://localhost:7676/shark-mocks"
        override_host = "somehost.com"

        [backends.detective]
        url = "http://www.elementary.org/"
        """
    )
    assert str(backends["dog"].uri) == "http://localhost:7676/dog-mocks"
    assert backends["dog"].override_host is None
    assert str(backends["shark.server"].uri) == "http://localhost:7676/shark-mocks"
    assert backends["shark.server"].override_host == "somehost.com"
    assert str(backends["detective"].uri) == "http://www.elementary.org/"


def test_defaults():
    backend = Backend.from_table({"url": "http://a.com"})
    assert backend.use_sni is True
    assert backend.grpc is False
    assert backend.cert_host is None
    assert backend.client_cert is None
    assert backend.ca_certs == ()


def test_backend_configs_must_use_toml_tables():
    err = _expect_kind(
        """
        [backends]
        "shark" = "https://a.com"
        """,
        BackendErrorKind.INVALID_ENTRY_TYPE,
    )
    assert err.name == "shark"


def test_backend_configs_cannot_contain_unrecognized_keys():
    err = _expect_kind(
        """
        [backends]
        shark = { url = "https://a.com", shrimp = true }
        """,
        BackendErrorKind.UNRECOGNIZED_KEY,
    )
    assert err.err.fields["key"] == "shrimp"


def test_backend_configs_must_provide_a_url():
    _expect_kind(
        """
        [backends]
        "shark" = {}
        """,
        BackendErrorKind.MISSING_URL,
    )


def test_backend_configs_must_provide_urls_as_a_string():
    _expect_kind(
        """
        [backends]
        "shark" = { url = 3 }
        """,
        BackendErrorKind.INVALID_URL_ENTRY,
    )


def test_backend_configs_must_provide_a_valid_url():
    _expect_kind(
        """
        [backends]
        "shark" = { url = "http:://[:::1]" }
        """,
        BackendErrorKind.INVALID_URL,
    )


def test_backend_configs_must_provide_override_host_as_a_string():
    _expect_kind(
        """
        [backends]
        "shark" = { url = "http://a.com", override_host = 3 }
        """,
        BackendErrorKind.INVALID_OVERRIDE_HOST_ENTRY,
    )


def test_backend_configs_must_provide_a_non_empty_override_host():
    _expect_kind(
        """
        [backends]
        "shark" = { url = "http://a.com", override_host = "" }
        """,
        BackendErrorKind.EMPTY_OVERRIDE_HOST,
    )


def test_backend_configs_must_provide_a_valid_override_host():
    _expect_kind(
        """
        [backends]
        "shark" = { url = "http://a.com", override_host = "somehost.com\\n" }
        """,
        BackendErrorKind.INVALID_OVERRIDE_HOST,
    )


@pytest.mark.parametrize(
    ("extra", "kind"),
    [
        ({"cert_host": ""}, BackendErrorKind.EMPTY_CERT_HOST),
        ({"cert_host": 1}, BackendErrorKind.INVALID_CERT_HOST_ENTRY),
        ({"use_sni": "yes"}, BackendErrorKind.INVALID_USE_SNI_ENTRY),
        ({"grpc": 1}, BackendErrorKind.INVALID_GRPC_ENTRY),
        ({"ca_certificate": ""}, BackendErrorKind.EMPTY_CA_CERT),
        ({"ca_certificate": 5}, BackendErrorKind.INVALID_CA_CERT_ENTRY),
    ],
)
def test_field_validation(extra, kind):
    with pytest.raises(BackendConfigError) as info:
        Backend.from_table({"url": "http://a.com", **extra})
    assert info.value.kind is kind


def test_optional_fields_are_read():
    backend = Backend.from_table(
        {"url": "http://a.com", "cert_host": "a.com", "use_sni": False, "grpc": True}
    )
    assert (backend.cert_host, backend.use_sni, backend.grpc) == ("a.com", False, True)


def test_from_table_does_not_modify_input():
    table = {"url": "http://a.com", "grpc": True}
    Backend.from_table(table)
    assert table == {"url": "http://a.com", "grpc": True}


def test_ca_certs_default_to_empty():
    backends = _read(
        """
        [backends]
        [backends.dog]
        url = "http://localhost:7676/dog-mocks"
        """
    )
    assert backends["dog"].ca_certs == ()


def test_reads_ca_certs():
    backends = _read(
        f"""
[backends]
[backends.dog]
url = "http://localhost:7676/dog-mocks"

[backends."shark.server"]
url = "http://localhost:7676/shark-mocks"
override_host = "somehost.com"
ca_certificate = '''
{CERT_PEM}'''
"""
    )
    assert backends["dog"].ca_certs == ()
    assert backends["shark.server"].ca_certs == (CERT_BODY,)


def test_reads_file_path_ca_certs(tmp_path):
    path = tmp_path / "ca.pem"
    path.write_text(CERT_PEM)
    backends = _read(
        f"""
[backends]
[backends.dog]
url = "http://localhost:7676/dog-mocks"

[backends."shark.server"]
url = "http://localhost:7676/shark-mocks"
override_host = "somehost.com"
ca_certificate.file = {json.dumps(str(path))}
"""
    )
    assert backends["dog"].ca_certs == ()
    assert backends["shark.server"].ca_certs == (CERT_BODY,)


def test_reads_multiple_ca_certs(tmp_path):
    path = tmp_path / "ca.pem"
    path.write_text(CERT_PEM)
    backends = _read(
        f"""
[backends]
[backends.dog]
url = "http://localhost:7676/dog-mocks"

[backends."shark.server"]
url = "http://localhost:7676/shark-mocks"
override_host = "somehost.com"
[[backends."shark.server".ca_certificate]]
file = {json.dumps(str(path))}
[[backends."shark.server".ca_certificate]]
file = {json.dumps(str(path))}
[[backends."shark.server".ca_certificate]]
value = '''
{CERT_PEM}'''
"""
    )
    assert backends["dog"].ca_certs == ()
    assert len(backends["shark.server"].ca_certs) == 3


def test_ca_certificate_text_with_several_sections():
    certs = parse_ca_certificates(CERT_PEM + _pem_certificate(b"second"))
    assert certs == [CERT_BODY, b"second"]


def test_ca_certificate_with_invalid_base64():
    with pytest.raises(BackendConfigError) as info:
        parse_ca_certificates(
            "-----BEGIN CERTIFICATE-----\n!!!!\n-----END CERTIFICATE-----\n"
        )
    assert info.value.kind is BackendErrorKind.INVALID_CA_CERT_ENTRY
    assert "Couldn't process certificate" in str(info.value)


def test_ca_certificate_table_without_file_or_value():
    with pytest.raises(BackendConfigError) as info:
        parse_ca_certificates({"other": "x"})
    assert "without a 'file' or 'value' field" in str(info.value)


def test_ca_certificate_value_must_be_string():
    with pytest.raises(BackendConfigError) as info:
        parse_ca_certificates({"value": 3})
    assert "invalid format for 'value' field" in str(info.value)


def test_ca_certificate_file_must_be_string():
    with pytest.raises(BackendConfigError) as info:
        parse_ca_certificates({"file": 3})
    assert "invalid format for file reference" in str(info.value)


def test_ca_certificate_file_with_extra_keys(tmp_path):
    path = tmp_path / "ca.pem"
    path.write_text(CERT_PEM)
    with pytest.raises(BackendConfigError) as info:
        parse_ca_certificates({"file": str(path), "extra": 1})
    assert 'unknown ca_certificate keys: ["extra"]' in str(info.value)


def test_ca_certificate_missing_file(tmp_path):
    with pytest.raises(BackendConfigError) as info:
        parse_ca_certificates({"file": str(tmp_path / "missing.pem")})
    assert info.value.kind is BackendErrorKind.INVALID_CA_CERT_ENTRY