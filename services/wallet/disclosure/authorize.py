"""Issues the signed response to an approved disclosure request."""

import logging
from typing import Optional

from opentelemetry import trace

from disclosure.context import DisclosureContext
from disclosure.errors import RequestNotAuthorizableError
from disclosure.models import ActType, DisclosureDecision, DisclosureResponse, PendingDisclosureRequest
from disclosure.utils import DAY, WEEK, now_ms

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SHARE_RESPONSE = "shareResp"
NOTIFICATIONS = "notifications"
RESPONSE_EXPIRY = DAY
PUSH_GRANT_EXPIRY = 2 * WEEK + DAY


async def response_issuer(request: PendingDisclosureRequest, context: DisclosureContext) -> str:
    """The root-most identity on the path to the selected account."""
    if request.act_type == ActType.none or not request.account:
        return request.target
    settings = await context.directory.network_settings_for_address(request.account)
    return settings.parent or request.target


async def _push_grant(issuer: str, client_id: str, display_name: str, context) -> Optional[str]:
    if not await context.notifications.notifications_allowed():
        return None
    endpoint = await context.notifications.endpoint_arn()
    if not endpoint:
        return None
    return await context.codec.create_token(
        issuer,
        {"aud": client_id, "type": NOTIFICATIONS, "value": endpoint},
        PUSH_GRANT_EXPIRY,
        f"Allow {display_name} to send your push notifications",
    )


def _released(request: PendingDisclosureRequest, decision: DisclosureDecision):
    if decision.released is None:
        return list(request.requested)
    return [name for name in request.requested if name in decision.released]


async def authorize_disclosure(
    request: PendingDisclosureRequest,
    decision: DisclosureDecision,
    context: DisclosureContext,
) -> DisclosureResponse:
    if request.error:
        raise RequestNotAuthorizableError(request.error)

    with tracer.start_as_current_span("disclosure.authorize") as span:
        client_id = request.client_id
        issuer = await response_issuer(request, context)
        span.set_attribute("disclosure.client_id", client_id)
        span.set_attribute("disclosure.issuer", issuer or "")
        display_name = await context.profiles.display_name(client_id)

        own = await context.claims.requested_claims(_released(request, decision))
        payload = {"aud": client_id, "type": SHARE_RESPONSE}
        if request.account and request.act_type != ActType.none:
            payload["nad"] = request.account
        if request.req:
            payload["req"] = request.req
        payload["own"] = {name: value for name, value in own.items() if name in request.requested}
        if request.verified:
            payload["verified"] = await context.claims.verified_claims_tokens(request.verified)

        if decision.push_permissions:
            push_token = await _push_grant(issuer, client_id, display_name, context)
            if push_token:
                enc_key = await context.directory.public_enc_key(issuer)
                payload["publicEncKey"] = enc_key
                payload["boxPub"] = enc_key
                payload["capabilities"] = [push_token]

        token = await context.codec.create_token(
            issuer,
            payload,
            RESPONSE_EXPIRY,
            f"Provide requested information to {display_name}",
        )

    await context.effects.update_interaction_stats(issuer, client_id, "share")
    await context.effects.store_connection(issuer, "apps", client_id)
    await context.effects.update_activity(request.id, authorizedAt=now_ms())
    await context.effects.clear_request(request.id)
    log.info("disclosure response issued by %s to %s", issuer, client_id)
    return DisclosureResponse(access_token=token)
