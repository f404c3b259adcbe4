# edgelocal

Local stand-ins for the services an edge compute package expects to find at
run time, driven by the `[local_server]` section of a `fastly.toml` manifest.
Pure Python, standard library only.

It reads and validates the manifest and gives you in-memory versions of:

- **backends** (`edgelocal.config.backends`): named upstream URLs with an
  optional host override, certificate host, `use_sni` (default true) and
  `grpc` (default false) flags, and CA certificates given as PEM text, as a
  table with a `file` or `value` field, or as an array of either;
- **dictionaries / config stores** (`edgelocal.config.dictionaries`): inline
  TOML tables (`format = "inline-toml"`) or JSON files (`format = "json"`),
  checked against the key limit of 256 characters and the value limit of
  8000 characters. JSON-backed dictionaries read their file again on every
  call to `contents()`;
- **device detection** (`edgelocal.config.device_detection`): user agent to
  JSON data, inline or from a JSON file;
- **geolocation** (`edgelocal.config.geolocation`): IP address to JSON data,
  inline or from a JSON file. Unmapped loopback addresses (`127.0.0.0/8`,
  `::1`) get `GeolocationData.default()` unless `use_default_loopback = false`;
- **object (KV) stores** (`edgelocal.object_store`): byte values under
  validated keys;
- **secret stores** (`edgelocal.secret_store`): named stores of named secrets.

Every problem found while reading a manifest is raised as a subclass of
`edgelocal.errors.FastlyConfigError`. Invalid entries raise one of the
`Invalid...Definition` errors, whose `name` is the offending entry and whose
`err` is a section error with a `kind` enum member saying exactly what was
wrong. An unreadable file raises `ConfigIoError`; malformed TOML raises
`InvalidFastlyToml`.

## Reading a manifest

```python
from edgelocal.config.manifest import FastlyConfig
from edgelocal.errors import FastlyConfigError

try:
    config = FastlyConfig.from_file("fastly.toml")
except FastlyConfigError as err:
    raise SystemExit(f"bad manifest: {err}")

print(config.name, config.language, config.authors)
backends = config.backends()          # dict[str, Backend]
dictionaries = config.dictionaries()  # dict[str, InlineTomlDictionary | JsonDictionary]
stores = config.object_stores()       # ObjectStores
secrets = config.secret_stores()      # SecretStores
geo = config.geolocation()
devices = config.device_detection()
```

`FastlyConfig.from_str` does the same for TOML text already in memory, and
`read_local_server_config` parses just the body of a `[local_server]`
section into a `LocalServerConfig`. The section names `config_stores` (for
`dictionaries`) and `object_store` / `kv_stores` (for `object_stores`) are
accepted as aliases; giving both a name and its alias is an error. Unknown
top-level keys in the manifest and in `local_server` are ignored.

A manifest such as

```toml
name = "example"
language = "rust"

[local_server.backends.origin]
url = "http://localhost:7676/mocks"
override_host = "origin.example.com"

[local_server.config_stores.settings]
format = "inline-toml"
contents = { greeting = "hello" }

[local_server.kv_stores]
assets = [{ key = "index.html", data = "<h1>hi</h1>" }]

[local_server.secret_stores]
vault = [{ key = "api-key", data = "placeholder" }]
```

yields one backend, one dictionary, one object store and one secret store.
Object and secret store items take either `data` (a string) or `file` (a
path whose bytes are read); object stores also accept the older name `path`.

Lookups:

```python
data = config.geolocation().lookup("127.0.0.1")   # str or ipaddress object
print(data.to_json() if data else "unknown")

device = config.device_detection().lookup("Some User-Agent")
```

## Stores on their own

```python
from edgelocal.object_store import ObjectKey, ObjectStoreKey, ObjectStores
from edgelocal.secret_store import SecretStore, SecretStores

objects = ObjectStores()
objects.insert(ObjectStoreKey("assets"), ObjectKey("logo.svg"), b"<svg/>")
assert objects.lookup(ObjectStoreKey("assets"), ObjectKey("logo.svg")) == b"<svg/>"

vault = SecretStore()
vault.add_secret("api-key", b"placeholder")
secrets = SecretStores()
secrets.add_store("vault", vault)
assert secrets.get_store("vault").get_secret("api-key").plaintext == b"placeholder"
```

`ObjectStores` is thread-safe. `lookup` raises `ObjectStoreError` when the
store or object is missing; `delete` of a missing object does nothing.
Object keys follow the platform rules: 1 to 1024 bytes of UTF-8, not `.` or
`..`, not starting with `.well-known/acme-challenge`, and none of
`\r \n [ ] * ? #`. A bad key raises `KeyValidationError` (also available as
`validate_key`). Secret store and secret names must be 1 to 255 ASCII
letters, digits, `-`, `_` or `.` (see `is_valid_name`).

## Client certificates

`edgelocal.config.client_cert.ClientCertInfo.from_pem(cert_pem, key_pem)`
collects certificates and private keys from both inputs and requires exactly
one key; otherwise it raises `ClientCertError`. `read_pem_items` returns the
`(label, der_bytes)` sections of any PEM text.

## Request helpers

`edgelocal.httpparts` has a small `Uri` and `Request`. `prepare_request`
returns a copy of a request whose URI is absolute, taking the host from the
`Host` header (or from the URI) and defaulting the scheme to `http`; it
raises `DownstreamRequestError` when no host or path can be found.
`filter_outgoing_headers` removes `Content-Length` and `Transfer-Encoding`
from a header mapping in place.

## Log endpoints

`edgelocal.logendpoint.LogEndpoint` writes one line per entry, as
`name :: message`: one trailing newline is dropped, interior newlines become
a literal `\n`, and empty messages are skipped. Output goes to standard
output unless another binary writer is installed with `set_log_writer`.

## What it does not do

This package only loads configuration and provides the in-memory stores and
helpers above. It does not run compute programs, does not serve or proxy
HTTP, does not open connections to backends, and has no command-line tool.

## Running the tests

Install the `test` extra and run `pytest` from the project root.