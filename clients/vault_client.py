"""
Vault-backed secrets for the lead engine.

The engine needs three secrets at startup: where the Lead Store lives, the
business timezone it reports in, and the Valkey URL used for sessions,
locks and notification inboxes. All of them live under the 'leadflow/'
KV v2 mount path and are read once per process through AppRole auth.
"""

import os
import logging
from typing import Dict

import hvac
from hvac.exceptions import InvalidPath, Unauthorized, Forbidden

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "leadflow"

# Optional fields of the lead_store secret and their fallbacks
_LEAD_STORE_OPTIONAL = {"timezone": "", "service_token": ""}

_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, str] = {}


class VaultError(Exception):
    """A secret exists but is unusable. The engine cannot start."""


def _env(name: str, override: str | None = None) -> str | None:
    return override or os.getenv(name)


class VaultClient:
    """AppRole-authenticated reader for secrets under leadflow/."""

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_namespace: str | None = None,
    ):
        """
        Raises:
            ValueError: VAULT_ADDR, VAULT_ROLE_ID or VAULT_SECRET_ID missing
            PermissionError: AppRole login rejected
        """
        self.vault_addr = _env("VAULT_ADDR", vault_addr)
        if not self.vault_addr:
            raise ValueError("VAULT_ADDR environment variable is required")

        role_id = _env("VAULT_ROLE_ID")
        secret_id = _env("VAULT_SECRET_ID")
        if not (role_id and secret_id):
            raise ValueError(
                "VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required"
            )

        namespace = _env("VAULT_NAMESPACE", vault_namespace)
        self.client = hvac.Client(url=self.vault_addr, namespace=namespace) if namespace \
            else hvac.Client(url=self.vault_addr)
        self._login(role_id, secret_id)
        logger.info(f"Vault client ready for {self.vault_addr}")

    def _login(self, role_id: str, secret_id: str) -> None:
        try:
            result = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
            self.client.token = result["auth"]["client_token"]
        except Exception as e:
            logger.error(f"Vault AppRole login failed: {e}")
            raise PermissionError(f"Vault AppRole authentication failed: {e}")

        if not self.client.is_authenticated():
            raise PermissionError("Vault authentication failed")

    def read(self, path: str) -> Dict[str, str]:
        """
        All fields of the secret at leadflow/<path>.

        Raises:
            PermissionError: Path missing or not readable with this role
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath:
            logger.error(f"Secret path not found: {full_path}")
            raise PermissionError(f"Secret path '{full_path}' not found in Vault")
        except (Unauthorized, Forbidden) as e:
            logger.error(f"Access denied to secret {full_path}: {e}")
            raise PermissionError(f"Access denied to secret '{full_path}': {e}")
        return response["data"]["data"]

    def get_secret(self, path: str, field: str) -> str:
        """
        One field of the secret at leadflow/<path>.

        Raises:
            PermissionError: Path missing or not readable with this role
            KeyError: Field not present in the secret
        """
        data = self.read(path)
        if field not in data:
            raise KeyError(
                f"Field '{field}' not found in secret '{_SECRET_PREFIX}/{path}'. "
                f"Available: {', '.join(data)}"
            )
        return data[field]


def _client() -> VaultClient:
    global _vault_client_instance
    if _vault_client_instance is None:
        _vault_client_instance = VaultClient()
    return _vault_client_instance


def _cached_secret(path: str, field: str, default: str | None = None) -> str:
    cache_key = f"{path}/{field}"
    if cache_key not in _secret_cache:
        try:
            _secret_cache[cache_key] = _client().get_secret(path, field)
        except KeyError:
            if default is None:
                raise
            _secret_cache[cache_key] = default
    return _secret_cache[cache_key]


def get_valkey_url() -> str:
    """Valkey URL for sessions, lead locks and notification inboxes."""
    return _cached_secret("valkey", "url")


def get_lead_store_config() -> Dict[str, str]:
    """
    Lead Store connection settings.

    timezone and service_token may be left out of the secret; they come
    back as empty strings.

    Returns:
        Dict with keys: base_url, timezone, service_token

    Raises:
        VaultError: If base_url is empty
    """
    config = {"base_url": _cached_secret("lead_store", "base_url")}
    for field, default in _LEAD_STORE_OPTIONAL.items():
        config[field] = _cached_secret("lead_store", field, default)

    if not config["base_url"]:
        raise VaultError("Secret 'lead_store' has an empty base_url")
    return config
