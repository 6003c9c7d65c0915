from __future__ import annotations

import argparse
import asyncio
import json

from .config import load_config
from .crypto.digest import IntentScope, build_digest
from .crypto.serialized import from_base64, to_base64
from .crypto.verify import local_verify
from .custodian.factory import build_custodian
from .errors import MalformedEncoding
from .service import SignerService


def _service(args: argparse.Namespace) -> SignerService:
    cfg = load_config()
    return SignerService(
        build_custodian(cfg),
        args.key_id or cfg.key_id,
        scheme=cfg.signature_scheme,
        timeout_s=args.timeout or cfg.custodian_timeout_s,
    )


async def _with_service(args: argparse.Namespace, fn):
    svc = _service(args)
    try:
        return await fn(svc)
    finally:
        await svc.close()


def _emit(outcome, render) -> int:
    if not outcome.ok:
        print(json.dumps({"ok": False, "error": outcome.error.value, "detail": outcome.detail}))
        return 1
    print(json.dumps({"ok": True, **render(outcome.value)}))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn
    from .app import create_app

    cfg = load_config()
    uvicorn.run(create_app(cfg), host=args.host or cfg.host, port=args.port or cfg.port, log_level=cfg.log_level.lower())
    return 0


def cmd_pubkey(args: argparse.Namespace) -> int:
    outcome = asyncio.run(_with_service(args, lambda svc: svc.get_public_key()))
    return _emit(outcome, lambda info: {
        "publicKeyHex": info.hex,
        "suiPublicKey": info.sui_public_key,
        "suiPubkeyAddress": info.address,
    })


def cmd_sign_tx(args: argparse.Namespace) -> int:
    tx = from_base64(args.tx_b64)
    outcome = asyncio.run(_with_service(args, lambda svc: svc.sign_transaction(tx)))
    return _emit(outcome, lambda signed: {
        "signature": signed.signature_b64,
        "digest": to_base64(signed.digest),
    })


def cmd_digest(args: argparse.Namespace) -> int:
    digest = build_digest(from_base64(args.tx_b64), IntentScope[args.scope])
    print(json.dumps({"digest": to_base64(digest), "hex": digest.hex()}))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    try:
        ok = local_verify(
            from_base64(args.tx_b64),
            from_base64(args.signature),
            bytes.fromhex(args.pubkey_hex),
            IntentScope[args.scope],
        )
    except (MalformedEncoding, ValueError) as e:
        print(json.dumps({"ok": False, "detail": str(e)}))
        return 2
    print(json.dumps({"ok": ok}))
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser("kmsigner")
    sub = p.add_subparsers(dest="cmd", required=True)
    scopes = [s.name for s in IntentScope]

    p_serve = sub.add_parser("serve")
    p_serve.add_argument("--host")
    p_serve.add_argument("--port", type=int)
    p_serve.set_defaults(func=cmd_serve)

    p_pk = sub.add_parser("pubkey")
    p_pk.add_argument("--key-id", dest="key_id")
    p_pk.add_argument("--timeout", type=float)
    p_pk.set_defaults(func=cmd_pubkey)

    p_sign = sub.add_parser("sign-tx")
    p_sign.add_argument("--tx-b64", dest="tx_b64", required=True)
    p_sign.add_argument("--key-id", dest="key_id")
    p_sign.add_argument("--timeout", type=float)
    p_sign.set_defaults(func=cmd_sign_tx)

    p_dig = sub.add_parser("digest")
    p_dig.add_argument("--tx-b64", dest="tx_b64", required=True)
    p_dig.add_argument("--scope", choices=scopes, default="TRANSACTION_DATA")
    p_dig.set_defaults(func=cmd_digest)

    p_ver = sub.add_parser("verify")
    p_ver.add_argument("--tx-b64", dest="tx_b64", required=True)
    p_ver.add_argument("--signature", required=True)
    p_ver.add_argument("--pubkey-hex", dest="pubkey_hex", required=True)
    p_ver.add_argument("--scope", choices=scopes, default="TRANSACTION_DATA")
    p_ver.set_defaults(func=cmd_verify)

    args = p.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
