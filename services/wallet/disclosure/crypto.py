import json
import logging
import os

from fastapi.concurrency import run_in_threadpool
from jwcrypto import jwk, jws
from jwcrypto.common import JWException

from disclosure.errors import SigningError, TokenVerificationError
from disclosure.settings import Settings
from disclosure.utils import now_ts

log = logging.getLogger(__name__)


class KeyProvider:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.store_dir = settings.key_store_dir
        os.makedirs(self.store_dir, exist_ok=True)

    def gen_keypair(self):
        return jwk.JWK.generate(kty="EC", crv=self.settings.jwk_curve)

    def save_key(self, kid: str, key: jwk.JWK, private_key: bool = True):
        with open(os.path.join(self.store_dir, f"{kid}.json"), "w", encoding="utf-8") as handle:
            handle.write(key.export(private_key=private_key))

    def load_key(self, kid: str) -> jwk.JWK:
        with open(os.path.join(self.store_dir, f"{kid}.json"), encoding="utf-8") as handle:
            return jwk.JWK.from_json(handle.read())

    def clear(self):
        for name in os.listdir(self.store_dir):
            if name.endswith(".json"):
                try:
                    os.unlink(os.path.join(self.store_dir, name))
                except FileNotFoundError:
                    continue


def signing_kid(identity: str) -> str:
    return f"{identity}#sign"


def agreement_kid(identity: str) -> str:
    return f"{identity}#agree"


class TokenCodec:
    """Signs outgoing tokens and verifies incoming ones against the key store."""

    def __init__(self, provider: KeyProvider):
        self.provider = provider

    async def create_token(self, issuer: str, payload: dict, expires_in: int, purpose: str) -> str:
        kid = signing_kid(issuer)
        try:
            key = await run_in_threadpool(self.provider.load_key, kid)
        except FileNotFoundError as exc:
            raise SigningError(f"no signing key available for {issuer}") from exc
        iat = now_ts()
        claims = {**payload, "iss": issuer, "iat": iat, "exp": iat + expires_in}
        log.info("signing %s token for %s: %s", payload.get("type"), issuer, purpose)
        token = jws.JWS(json.dumps(claims).encode())
        try:
            token.add_signature(key, None, json.dumps({"alg": "ES256", "kid": kid, "typ": "JWT"}))
        except JWException as exc:
            raise SigningError(f"could not sign token for {issuer}") from exc
        return token.serialize(compact=True)

    async def verify_token(self, raw_token: str) -> dict:
        token = jws.JWS()
        try:
            token.deserialize(raw_token)
            claims = json.loads(token.objects["payload"])
            key = await run_in_threadpool(self.provider.load_key, signing_kid(claims["iss"]))
            token.verify(key)
            exp = claims.get("exp")
            if exp is not None and not isinstance(exp, (int, float)):
                raise TypeError(f"exp must be a number, got {exp!r}")
        except (JWException, ValueError, KeyError, TypeError, FileNotFoundError) as exc:
            log.warning("request token rejected: %s", exc)
            raise TokenVerificationError() from exc
        if exp is not None and exp < now_ts():
            raise TokenVerificationError("Request token has expired")
        return {"payload": claims}
