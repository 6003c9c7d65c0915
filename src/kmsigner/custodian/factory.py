from __future__ import annotations

from ..config import SignerConfig
from .base import Custodian
from .cache import CachedCustodian


def build_custodian(cfg: SignerConfig) -> Custodian:
    """Construct the custodian handle for ``cfg.custodian_backend``."""
    be = cfg.custodian_backend.lower()
    if be == "aws-kms":
        from .aws_kms import AwsKmsCustodian
        custodian: Custodian = AwsKmsCustodian(region=cfg.aws_region)
    elif be == "azure-kv":
        from .azure_kv import AzureKeyVaultCustodian
        custodian = AzureKeyVaultCustodian(
            vault_url=cfg.keyvault_url,
            tenant_id=cfg.azure_tenant_id,
            client_id=cfg.azure_client_id,
            client_secret=cfg.azure_client_secret,
        )
    elif be == "local":
        from .local import LocalCustodian
        custodian = LocalCustodian(key_pem_path=cfg.local_key_pem, signature_encoding=cfg.local_signature_encoding)
    else:
        raise ValueError(f"unsupported CUSTODIAN_BACKEND {be}")
    if cfg.pubkey_cache_ttl_s > 0:
        custodian = CachedCustodian(custodian, ttl_s=cfg.pubkey_cache_ttl_s)
    return custodian
