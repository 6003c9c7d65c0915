"""Process configuration, read once at startup from the environment (.env honored)."""
from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

BACKENDS = ("aws-kms", "azure-kv", "local")


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


class SignerConfig(BaseModel):
    custodian_backend: str = "aws-kms"  # aws-kms|azure-kv|local
    key_id: str = ""
    signature_scheme: str = "Secp256k1"

    aws_region: str | None = None

    azure_keyvault_name: str | None = None
    azure_keyvault_url: str | None = None
    azure_tenant_id: str | None = None
    azure_client_id: str | None = None
    azure_client_secret: str | None = None

    local_key_pem: str | None = None
    local_signature_encoding: str = "der"  # der|raw

    custodian_timeout_s: float = 10.0
    pubkey_cache_ttl_s: float = 0.0
    max_tx_b64_chars: int = 10000

    host: str = "0.0.0.0"
    port: int = 9001
    log_level: str = "INFO"

    @property
    def keyvault_url(self) -> str:
        if self.azure_keyvault_url:
            return self.azure_keyvault_url
        return f"https://{self.azure_keyvault_name or ''}.vault.azure.net"


def load_config() -> SignerConfig:
    load_dotenv()
    backend = os.getenv("CUSTODIAN_BACKEND", "aws-kms").lower()
    if backend not in BACKENDS:
        raise ValueError(f"unsupported CUSTODIAN_BACKEND {backend!r}; expected one of {', '.join(BACKENDS)}")
    # SIGNER_KEY_ID wins; fall back to the backend-specific variables
    key_id = os.getenv("SIGNER_KEY_ID") or (
        os.getenv("AZURE_KEY_NAME", "") if backend == "azure-kv" else os.getenv("AWS_KMS_KEY_ID", "")
    )
    return SignerConfig(
        custodian_backend=backend,
        key_id=key_id,
        signature_scheme=os.getenv("SIGNATURE_SCHEME", "Secp256k1"),
        aws_region=os.getenv("AWS_REGION") or None,
        azure_keyvault_name=os.getenv("AZURE_KEYVAULT_NAME") or None,
        azure_keyvault_url=os.getenv("AZURE_KEYVAULT_URL") or None,
        azure_tenant_id=os.getenv("AZURE_TENANT_ID") or None,
        azure_client_id=os.getenv("AZURE_CLIENT_ID") or None,
        azure_client_secret=os.getenv("AZURE_CLIENT_SECRET") or None,
        local_key_pem=os.getenv("LOCAL_KEY_PEM") or None,
        local_signature_encoding=os.getenv("LOCAL_SIGNATURE_ENCODING", "der").lower(),
        custodian_timeout_s=_env_float("CUSTODIAN_TIMEOUT_SEC", "10"),
        pubkey_cache_ttl_s=_env_float("PUBKEY_CACHE_TTL_SEC", "0"),
        max_tx_b64_chars=int(os.getenv("MAX_TX_B64_CHARS", "10000")),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "9001")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
