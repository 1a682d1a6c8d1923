import uuid

import uvicorn
from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from jwcrypto import jwk
from jwcrypto.common import JWException

from disclosure import crypto, storage, telemetry
from disclosure.authorize import authorize_disclosure
from disclosure.claims import ClaimsProvider
from disclosure.context import DisclosureContext
from disclosure.did import generate_did_key
from disclosure.directory import IdentityDirectory
from disclosure.effects import SideEffects
from disclosure.errors import ClaimsResolutionError, RequestNotAuthorizableError, SigningError
from disclosure.models import (
    Account, AccountRegistration, AttestationRequest, AuthorizeRequest,
    BootstrapIdentityResp, ClaimsUpdate, ClientRegistration, DisclosureDecision,
    DisclosureRequestIn, DisclosureResponse, NotificationRegistration,
)
from disclosure.networks import Networks
from disclosure.notifications import Notifications
from disclosure.pending import PendingRequests
from disclosure.profiles import ProfileRegistry
from disclosure.resolver import disclosure_request
from disclosure.settings import Settings
from disclosure.utils import now_ts

settings = Settings()
telemetry.setup_logging(settings)
telemetry.setup_otel(settings)
app = FastAPI(title="Wallet Disclosure v1", version="1.0.0")
engine, Session = storage.init_db(settings)
redis = storage.init_redis(settings)
key_provider = crypto.KeyProvider(settings)
networks = Networks(settings)
directory = IdentityDirectory(Session, networks, settings.default_network)
profiles = ProfileRegistry(Session, settings.profile_resolver_url)
pending = PendingRequests(redis, settings.pending_ttl_seconds)
context = DisclosureContext(
    networks=networks,
    directory=directory,
    codec=crypto.TokenCodec(key_provider),
    claims=ClaimsProvider(Session),
    effects=SideEffects(Session, redis, pending, profiles),
    profiles=profiles,
    notifications=Notifications(Session),
)


def require_admin(x_admin_token: str = Header(None)):
    expected = settings.admin_token
    if not expected:
        return
    if x_admin_token != expected:
        raise HTTPException(401, "invalid admin token")


@app.post("/v1/bootstrap/identity", response_model=BootstrapIdentityResp)
async def bootstrap_identity(network: str = Query(None)):
    did, doc = await run_in_threadpool(generate_did_key, key_provider)
    await run_in_threadpool(
        storage.save_account,
        Session,
        Account(address=did, network=network or settings.default_network),
        enc_key=doc.public_agree,
    )
    current = await directory.current_address()
    if not current:
        await directory.set_current_address(did)
    return BootstrapIdentityResp(address=did, did_doc=doc, current=not current)


@app.put("/v1/identity/current")
async def set_current_identity(address: str = Body(..., embed=True)):
    if not await run_in_threadpool(storage.get_account, Session, address):
        raise HTTPException(404, "unknown account")
    await directory.set_current_address(address)
    return {"ok": True, "address": address}


@app.post("/v1/accounts")
def register_account(req: AccountRegistration, _=Depends(require_admin)):
    account = Account(
        address=req.address,
        parent=req.parent,
        network=req.network,
        client_id=req.client_id,
        signer_type=req.signer_type.value if req.signer_type else None,
        authorized_clients=req.authorized_clients,
    )
    storage.save_account(Session, account)
    return {"ok": True}


@app.post("/v1/clients")
def register_client(req: ClientRegistration, _=Depends(require_admin)):
    try:
        key = jwk.JWK(**req.public_jwk)
    except (JWException, TypeError, ValueError) as exc:
        raise HTTPException(400, "invalid client key") from exc
    if key.has_private:
        raise HTTPException(400, "only public client keys are accepted")
    key_provider.save_key(crypto.signing_kid(req.client_id), key, private_key=False)
    profiles.save(req.client_id, req.name)
    return {"ok": True}


@app.put("/v1/claims")
def update_claims(req: ClaimsUpdate):
    storage.save_claims(Session, req.claims)
    return {"ok": True}


@app.post("/v1/attestations")
def add_attestation(req: AttestationRequest):
    storage.save_attestation(Session, req.claim_type, req.token)
    return {"ok": True}


@app.post("/v1/notifications")
def register_notifications(req: NotificationRegistration):
    context.notifications.register(req.endpoint_arn, req.allowed)
    return {"ok": True}


@app.post("/v1/requests/disclosure")
async def receive_disclosure_request(req: DisclosureRequestIn):
    if not await directory.current_address():
        raise HTTPException(409, "no identity has been set up on this wallet")
    request_id = uuid.uuid4().hex
    await run_in_threadpool(storage.create_activity, Session, request_id)
    request = await disclosure_request(request_id, req.request_token, context)
    if request is None:
        activity = await run_in_threadpool(storage.get_activity, Session, request_id)
        raise HTTPException(400, activity["error"])
    return request.as_record()


@app.get("/v1/requests/{request_id}")
def get_pending_request(request_id: str):
    request = pending.get(request_id)
    if not request:
        raise HTTPException(404, "request not found or expired")
    return request.as_record()


@app.post("/v1/requests/{request_id}/authorize", response_model=DisclosureResponse)
async def authorize_request(request_id: str, req: AuthorizeRequest):
    request = await run_in_threadpool(pending.get, request_id)
    if not request:
        raise HTTPException(404, "request not found or expired")
    decision = DisclosureDecision(released=req.released, push_permissions=req.push_permissions)
    try:
        return await authorize_disclosure(request, decision, context)
    except RequestNotAuthorizableError as exc:
        raise HTTPException(409, str(exc)) from exc
    except (SigningError, ClaimsResolutionError) as exc:
        raise HTTPException(500, str(exc)) from exc


@app.get("/v1/activities/{activity_id}")
def get_activity(activity_id: str):
    activity = storage.get_activity(Session, activity_id)
    if not activity:
        raise HTTPException(404, "activity not found")
    return activity


@app.get("/healthz")
def healthz():
    storage.health_check(engine)
    return {"ok": True, "ts": now_ts()}


@app.get("/readyz")
def readyz():
    return {"ok": True}


@app.post("/v1/admin/reset")
def admin_reset(_=Depends(require_admin)):
    storage.reset_state(Session)
    redis.flushdb()
    key_provider.clear()
    return {"ok": True}


def run():
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    run()
