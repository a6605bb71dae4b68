"""Clients for the services the lead engine talks to: Vault, Valkey and the Lead Store."""

from clients.vault_client import VaultClient, VaultError, get_valkey_url, get_lead_store_config
from clients.valkey_client import ValkeyClient
from clients.lead_store_client import HttpLeadStore
