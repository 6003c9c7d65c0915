from pydantic import BaseModel, Field
from typing import Optional


class SignTransactionRequest(BaseModel):
    txBytes: str = Field(min_length=1)
    timeoutSec: Optional[float] = Field(default=None, gt=0)


class SignPersonalMessageRequest(BaseModel):
    message: str = Field(min_length=1, max_length=20000)
    timeoutSec: Optional[float] = Field(default=None, gt=0)


class SignMessageHashRequest(BaseModel):
    # base64 of exactly 32 bytes
    digest: str = Field(min_length=1, max_length=64)
    timeoutSec: Optional[float] = Field(default=None, gt=0)


class SignatureResponse(BaseModel):
    signature: str
    digest: Optional[str] = None


class AddressResponse(BaseModel):
    suiPubkeyAddress: str


class PublicKeyResponse(BaseModel):
    publicKeyHex: str
    suiPublicKey: str
    suiPubkeyAddress: str
