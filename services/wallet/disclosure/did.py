import base64

from jwcrypto import jwk

from disclosure.crypto import KeyProvider, agreement_kid, signing_kid
from disclosure.models import DIDDoc


def did_from_jwk_public(key: jwk.JWK) -> str:
    pub = key.export(as_dict=True)
    x = base64.urlsafe_b64decode(pub["x"] + "==")
    y = base64.urlsafe_b64decode(pub["y"] + "==")
    fingerprint = base64.urlsafe_b64encode(x + y).decode().rstrip("=")
    return f"did:key:z{fingerprint[:46]}"


def generate_did_key(provider: KeyProvider, service_endpoint: str = ""):
    signing = provider.gen_keypair()
    signing.key_ops = ["sign", "verify"]
    agreement = provider.gen_keypair()
    agreement.key_ops = [
        "deriveKey",
        "deriveBits",
        "wrapKey",
        "unwrapKey",
    ]
    did = did_from_jwk_public(signing)
    provider.save_key(signing_kid(did), signing)
    provider.save_key(agreement_kid(did), agreement)
    doc = DIDDoc(
        did=did,
        public_sign=signing.export(as_dict=True)["x"],
        public_agree=agreement.export(as_dict=True)["x"],
        service_endpoint=service_endpoint or f"inbox://{did.split(':')[-1][:8]}",
    )
    return did, doc
