from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .config import SignerConfig, load_config
from .crypto.serialized import from_base64, to_base64
from .custodian.base import Custodian
from .custodian.factory import build_custodian
from .errors import ErrorKind, MalformedEncoding, Outcome
from .models import (
    AddressResponse,
    PublicKeyResponse,
    SignatureResponse,
    SignMessageHashRequest,
    SignPersonalMessageRequest,
    SignTransactionRequest,
)
from .obs.prom import prometheus_latest
from .service import SignerService
from .utils.logging import get_logger

log = get_logger("app")

STATUS_BY_KIND = {
    ErrorKind.MALFORMED_ENCODING: 502,
    ErrorKind.INVALID_POINT_ENCODING: 502,
    ErrorKind.UNSUPPORTED_SCHEME: 500,
    ErrorKind.CUSTODIAN_UNAVAILABLE: 503,
    ErrorKind.CUSTODIAN_TIMEOUT: 504,
    ErrorKind.SIGNATURE_VERIFICATION_FAILED: 500,
    ErrorKind.INVALID_INPUT: 400,
}


def error_response(kind: ErrorKind, detail: str) -> JSONResponse:
    return JSONResponse({"error": kind.value, "detail": detail}, status_code=STATUS_BY_KIND.get(kind, 500))


def _failed(outcome: Outcome) -> JSONResponse:
    return error_response(outcome.error, outcome.detail)  # type: ignore[arg-type]


def _decode_b64(value: str) -> bytes:
    try:
        return from_base64(value)
    except MalformedEncoding:
        return b""


def create_app(cfg: SignerConfig | None = None, custodian: Custodian | None = None) -> FastAPI:
    """Build the HTTP app. The custodian handle is constructed once at startup
    (or injected) and shared by every request through ``app.state.signer``."""
    cfg = cfg or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        handle = custodian if custodian is not None else build_custodian(cfg)
        app.state.signer = SignerService(
            handle,
            cfg.key_id,
            scheme=cfg.signature_scheme,
            timeout_s=cfg.custodian_timeout_s,
        )
        log.info("signer ready backend=%s key=%s", cfg.custodian_backend, cfg.key_id)
        try:
            yield
        finally:
            await app.state.signer.close()

    app = FastAPI(title="kmsigner: custodian-backed Sui signer", lifespan=lifespan)
    app.state.config = cfg

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return error_response(ErrorKind.INVALID_INPUT, "Invalid request body")

    @app.get("/")
    async def root():
        return PlainTextResponse(f"kmsigner ({cfg.custodian_backend}) running")

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.get("/kms/get-pubkey-address")
    async def get_pubkey_address(request: Request):
        outcome = await request.app.state.signer.get_public_key_address()
        if not outcome.ok:
            return _failed(outcome)
        return AddressResponse(suiPubkeyAddress=outcome.value)

    @app.get("/kms/get-pubkey-hex")
    async def get_pubkey_hex(request: Request):
        outcome = await request.app.state.signer.get_public_key()
        if not outcome.ok:
            return _failed(outcome)
        info = outcome.value
        return PublicKeyResponse(publicKeyHex=info.hex, suiPublicKey=info.sui_public_key, suiPubkeyAddress=info.address)

    @app.post("/kms/sign-transaction")
    async def sign_transaction(body: SignTransactionRequest, request: Request):
        if len(body.txBytes) > cfg.max_tx_b64_chars:
            return error_response(ErrorKind.INVALID_INPUT, f"txBytes exceeds {cfg.max_tx_b64_chars} characters")
        tx_bytes = _decode_b64(body.txBytes)
        if not tx_bytes:
            return error_response(ErrorKind.INVALID_INPUT, "txBytes is not valid base64")
        outcome = await request.app.state.signer.sign_transaction(tx_bytes, timeout_s=body.timeoutSec)
        if not outcome.ok:
            return _failed(outcome)
        return SignatureResponse(signature=outcome.value.signature_b64, digest=to_base64(outcome.value.digest))

    @app.post("/kms/sign-personal-message")
    async def sign_personal_message(body: SignPersonalMessageRequest, request: Request):
        message = _decode_b64(body.message)
        if not message:
            return error_response(ErrorKind.INVALID_INPUT, "message is not valid base64")
        outcome = await request.app.state.signer.sign_personal_message(message, timeout_s=body.timeoutSec)
        if not outcome.ok:
            return _failed(outcome)
        return SignatureResponse(signature=outcome.value.signature_b64, digest=to_base64(outcome.value.digest))

    @app.post("/kms/sign-message-hash")
    async def sign_message_hash(body: SignMessageHashRequest, request: Request):
        digest = _decode_b64(body.digest)
        if not digest:
            return error_response(ErrorKind.INVALID_INPUT, "digest is not valid base64")
        outcome = await request.app.state.signer.sign_message_hash(digest, timeout_s=body.timeoutSec)
        if not outcome.ok:
            return _failed(outcome)
        return SignatureResponse(signature=to_base64(outcome.value), digest=body.digest)

    @app.get("/metrics")
    def prometheus_metrics():
        data, content_type = prometheus_latest()
        return Response(data, media_type=content_type)

    return app
