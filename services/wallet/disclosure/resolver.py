"""Turns a disclosure request into a pending request record.

The account acting as subject is chosen according to the request's ``act``:

* ``none``: no account, the current identity answers directly.
* ``general``: any account of the identity on the requested network. The
  current identity wins when it lives on that network, otherwise the first
  account in directory order is used.
* ``segregated`` / ``keypair`` / ``devicekey``: the account created for this
  client with the matching signer type, if one exists yet.

Unsupported networks and account kinds are reported through the request's
``error`` field instead of being raised.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from opentelemetry import trace
from pydantic import ValidationError

from disclosure.context import DisclosureContext
from disclosure.errors import (
    TokenVerificationError,
    UnsupportedAccountTypeError,
    WrongRequestTypeError,
)
from disclosure.models import ActType, PendingDisclosureRequest, ShareRequestPayload, WalletSnapshot
from disclosure.networks import signer_type_for
from disclosure.utils import is_legacy_ms, spawn

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SHARE_REQUEST = "shareReq"


@dataclass
class Selection:
    target: Optional[str]
    account: Optional[str] = None
    authorized: bool = False


def _root(snapshot: WalletSnapshot) -> Optional[str]:
    return snapshot.current_address or snapshot.settings.address


async def _select_general(network, client_id, snapshot, directory) -> Selection:
    accounts = await directory.accounts_for_network(network)
    current = snapshot.current_address
    for account in accounts:
        if account.address == current:
            return Selection(current, current, account.authorized_for(client_id))
    if accounts:
        first = accounts[0]
        return Selection(first.parent or first.address, first.address, first.authorized_for(client_id))
    return Selection(_root(snapshot))


async def select_account(act_type, network, client_id, snapshot, directory) -> Selection:
    if act_type == ActType.general:
        return await _select_general(network, client_id, snapshot, directory)
    signer_type = signer_type_for(act_type)
    account = await directory.account_for_client_id_signer_type_and_network(
        network, client_id, signer_type.value
    )
    if account is None:
        return Selection(_root(snapshot))
    return Selection(account.parent or account.address, account.address, account.authorized_for(client_id))


def _fail(request: PendingDisclosureRequest, snapshot: WalletSnapshot, error: str):
    log.warning("disclosure request from %s rejected: %s", request.client_id, error)
    request.target = snapshot.current_address
    request.error = error
    return request


async def resolve(
    payload: Union[dict, ShareRequestPayload],
    raw_token: Optional[str],
    context: DisclosureContext,
    request_id: Optional[str] = None,
    default_act: ActType = ActType.general,
) -> PendingDisclosureRequest:
    share = payload if isinstance(payload, ShareRequestPayload) else ShareRequestPayload.model_validate(payload)
    act_type = ActType(share.act or default_act)

    with tracer.start_as_current_span("disclosure.resolve") as span:
        span.set_attribute("disclosure.client_id", share.iss)
        span.set_attribute("disclosure.act_type", act_type.value)
        snapshot = await context.directory.snapshot()
        request = PendingDisclosureRequest(
            id=request_id,
            client_id=share.iss,
            callback_url=share.callback,
            act_type=act_type,
            req=raw_token,
            requested=list(share.requested),
            validated_signature=True,
            verified=share.verified,
        )
        if is_legacy_ms(share.iat):
            request.legacy_ms = True

        if share.net:
            request.network = share.net
            if not context.networks.is_supported(share.net):
                return _fail(request, snapshot, context.networks.unsupported_network_error(share.net))

        if act_type == ActType.none:
            request.target = snapshot.current_address
        else:
            network = share.net or snapshot.settings.network
            request.network = network
            try:
                selection = await select_account(act_type, network, share.iss, snapshot, context.directory)
            except UnsupportedAccountTypeError:
                return _fail(request, snapshot, context.networks.unsupported_account_error(network))
            request.target = selection.target
            request.account = selection.account
            request.account_authorized = selection.authorized

        span.set_attribute("disclosure.target", request.target or "")
        await context.effects.update_interaction_stats(request.target, request.client_id, "request")
        spawn(
            context.effects.refresh_external_profile(request.client_id),
            name=f"refresh-profile:{request.client_id}",
        )
        return request


async def handle(payload, raw_token: Optional[str], context: DisclosureContext) -> PendingDisclosureRequest:
    """Resolve an in-process request whose payload is already decoded."""
    return await resolve(payload, raw_token, context, default_act=ActType.none)


async def _publish_identity(target: str, context: DisclosureContext):
    if await context.directory.has_published_did(target):
        return
    working, error = await context.effects.publication_status()
    if working or error:
        return
    spawn(context.effects.save_public_identity(target), name=f"publish-identity:{target}")


async def disclosure_request(
    request_id: str, raw_token: str, context: DisclosureContext
) -> Optional[PendingDisclosureRequest]:
    """Verify a signed request token and resolve it.

    Returns None when the token cannot be used at all. The reason is recorded
    on the activity record.
    """
    try:
        verified = await context.codec.verify_token(raw_token)
        payload = verified["payload"]
        if payload.get("type") != SHARE_REQUEST:
            raise WrongRequestTypeError()
        try:
            share = ShareRequestPayload.model_validate(payload)
        except ValidationError as exc:
            raise WrongRequestTypeError() from exc
    except (TokenVerificationError, WrongRequestTypeError) as exc:
        log.warning("disclosure request %s abandoned: %s", request_id, exc)
        await context.effects.update_activity(request_id, error=str(exc))
        return None

    request = await resolve(share, raw_token, context, request_id=request_id)
    if request.error:
        await context.effects.update_activity(request_id, error=request.error)
        return request
    await context.effects.store_request(request)
    await _publish_identity(request.target, context)
    return request
