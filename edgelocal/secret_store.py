"""Named secret stores holding plaintext secrets."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Secret:
    """A secret value."""

    plaintext: bytes = b""


@dataclass
class SecretStore:
    """A set of secrets keyed by name."""

    secrets: dict[str, Secret] = field(default_factory=dict)

    def get_secret(self, name: str) -> Secret | None:
        """Return the secret of this name, or ``None``."""
        return self.secrets.get(name)

    def add_secret(self, name: str, secret: bytes | str) -> None:
        """Store ``secret`` under ``name``, replacing any earlier value."""
        data = secret.encode() if isinstance(secret, str) else bytes(secret)
        self.secrets[name] = Secret(data)


@dataclass
class SecretStores:
    """A set of secret stores keyed by name."""

    stores: dict[str, SecretStore] = field(default_factory=dict)

    def get_store(self, name: str) -> SecretStore | None:
        """Return the store of this name, or ``None``."""
        return self.stores.get(name)

    def add_store(self, name: str, store: SecretStore) -> None:
        """Register ``store`` under ``name``, replacing any earlier store."""
        self.stores[name] = store


@dataclass(frozen=True)
class StandardSecretLookup:
    """A reference to a secret held in a named store."""

    store_name: str
    secret_name: str


@dataclass(frozen=True)
class InjectedSecretLookup:
    """A secret whose plaintext was supplied directly."""

    plaintext: bytes


SecretLookup = StandardSecretLookup | InjectedSecretLookup