import base64
import hashlib

from starlette.testclient import TestClient

from kmsigner.app import create_app
from kmsigner.crypto.serialized import split_serialized
from kmsigner.crypto.verify import local_verify
from kmsigner.errors import CustodianUnavailable


def b64(b: bytes) -> str:
    return base64.b64encode(b).decode()


class Down:
    async def fetch_public_key(self, key_id):
        raise CustodianUnavailable("AccessDenied")

    async def sign_digest(self, key_id, digest, algorithm="ECDSA_SHA_256"):
        raise CustodianUnavailable("AccessDenied")

    async def verify_digest(self, key_id, digest, signature):
        raise CustodianUnavailable("AccessDenied")


def test_health_and_banner(cfg, custodian):
    with TestClient(create_app(cfg, custodian=custodian)) as client:
        assert client.get("/health").json() == {"ok": True}
        r = client.get("/")
        assert r.status_code == 200
        assert "local" in r.text


def test_sign_transaction_endpoint(cfg, high_s_custodian):
    with TestClient(create_app(cfg, custodian=high_s_custodian)) as client:
        tx = bytes(32)
        r = client.post("/kms/sign-transaction", json={"txBytes": b64(tx)})
        assert r.status_code == 200
        body = r.json()
        sig = base64.b64decode(body["signature"])
        assert len(sig) == 98
        assert base64.b64decode(body["digest"]) == hashlib.blake2b(b"\x00\x00\x00" + tx, digest_size=32).digest()
        _, _, pk = split_serialized(sig)
        assert local_verify(tx, sig, pk)

        info = client.get("/kms/get-pubkey-hex").json()
        assert info["publicKeyHex"] == pk.hex()
        addr = client.get("/kms/get-pubkey-address").json()
        assert addr["suiPubkeyAddress"] == info["suiPubkeyAddress"]
        assert addr["suiPubkeyAddress"].startswith("0x")


def test_sign_transaction_rejects_bad_input(cfg, custodian):
    with TestClient(create_app(cfg, custodian=custodian)) as client:
        r = client.post("/kms/sign-transaction", json={"txBytes": "%%%"})
        assert r.status_code == 400
        assert r.json()["error"] == "invalid_input"

        r = client.post("/kms/sign-transaction", json={})
        assert r.status_code == 400

        r = client.post("/kms/sign-transaction", json={"txBytes": "A" * (cfg.max_tx_b64_chars + 4)})
        assert r.status_code == 400


def test_sign_message_hash_endpoint(cfg, custodian):
    with TestClient(create_app(cfg, custodian=custodian)) as client:
        digest = hashlib.sha256(b"msg").digest()
        r = client.post("/kms/sign-message-hash", json={"digest": b64(digest)})
        assert r.status_code == 200
        assert len(base64.b64decode(r.json()["signature"])) == 64

        r = client.post("/kms/sign-message-hash", json={"digest": b64(digest[:16])})
        assert r.status_code == 400


def test_sign_personal_message_endpoint(cfg, custodian):
    with TestClient(create_app(cfg, custodian=custodian)) as client:
        r = client.post("/kms/sign-personal-message", json={"message": b64(b"hello sui")})
        assert r.status_code == 200
        assert len(base64.b64decode(r.json()["signature"])) == 98


def test_custodian_down_maps_to_503(cfg):
    with TestClient(create_app(cfg, custodian=Down())) as client:
        r = client.post("/kms/sign-transaction", json={"txBytes": b64(b"tx")})
        assert r.status_code == 503
        assert r.json()["error"] == "custodian_unavailable"
        assert client.get("/kms/get-pubkey-address").status_code == 503


def test_metrics_endpoint(cfg, custodian):
    with TestClient(create_app(cfg, custodian=custodian)) as client:
        client.post("/kms/sign-transaction", json={"txBytes": b64(b"tx")})
        r = client.get("/metrics")
        assert r.status_code == 200
        assert "kmsigner_operations_total" in r.text
        assert "kmsigner_custodian_latency_ms" in r.text
