import pytest

from conftest import FakeClaims, FakeCodec, FakeDirectory, FakeEffects, FakeNotifications, FakeProfiles
from disclosure import authorize
from disclosure.authorize import authorize_disclosure
from disclosure.errors import ClaimsResolutionError, RequestNotAuthorizableError, SigningError
from disclosure.models import DisclosureDecision, NetworkSettings, PendingDisclosureRequest

ADDRESS = "0x0102030405"
PRIMARY = "0x0102030408"
CLIENT_ID = "0x012"
CALLBACK = "https://chasqui.uport.me/bla/blas"
AUTHORIZED_AT = 1492997057053
OWN = {"name": "Friedrick Hayek", "description": "Monetary maven"}
PURPOSE = "Provide requested information to Canton of Zug"


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch):
    monkeypatch.setattr(authorize, "now_ms", lambda: AUTHORIZED_AT)


def pending(**fields):
    values = {
        "id": "123",
        "target": ADDRESS,
        "account": ADDRESS,
        "act_type": "general",
        "validated_signature": True,
        "client_id": CLIENT_ID,
        "callback_url": CALLBACK,
        "req": "JWT",
        "requested": ["name", "description"],
    }
    values.update(fields)
    return PendingDisclosureRequest(**values)


def build(make_context, directory=None, notifications=None, claims=None, codec=None, effects=None):
    return make_context(
        directory=directory or FakeDirectory(),
        codec=codec or FakeCodec(),
        claims=claims or FakeClaims(claims=dict(OWN, email="hayek@example.org")),
        effects=effects or FakeEffects(),
        profiles=FakeProfiles({CLIENT_ID: "Canton of Zug"}),
        notifications=notifications or FakeNotifications(),
    )


def bookkeeping(issuer, client_id=CLIENT_ID):
    return [
        ("stats", issuer, client_id, "share"),
        ("connection", issuer, "apps", client_id),
        ("activity", "123", {"authorizedAt": AUTHORIZED_AT}),
        ("clear", "123"),
    ]


@pytest.mark.asyncio
async def test_authorizes_simple_request(make_context):
    codec = FakeCodec()
    effects = FakeEffects()
    context = build(make_context, codec=codec, effects=effects)

    response = await authorize_disclosure(pending(), DisclosureDecision(), context)

    assert response.access_token == "JWT"
    assert codec.created == [
        (
            ADDRESS,
            {"aud": CLIENT_ID, "type": "shareResp", "nad": ADDRESS, "req": "JWT", "own": OWN},
            86400,
            PURPOSE,
        )
    ]
    assert effects.events == bookkeeping(ADDRESS)


@pytest.mark.asyncio
async def test_did_target_signs_for_its_account(make_context):
    did = f"did:uport:{ADDRESS}"
    client_id = "did:eg:0x012"
    codec = FakeCodec()
    effects = FakeEffects()
    context = build(make_context, codec=codec, effects=effects)

    await authorize_disclosure(pending(target=did, client_id=client_id), DisclosureDecision(), context)

    issuer, payload, expires_in, purpose = codec.created[0]
    assert issuer == did
    assert payload["aud"] == client_id
    assert payload["nad"] == ADDRESS
    assert purpose == f"Provide requested information to {client_id}"
    assert effects.events == bookkeeping(did, client_id)


@pytest.mark.asyncio
async def test_sub_account_response_is_issued_by_parent(make_context):
    directory = FakeDirectory(address_settings={ADDRESS: NetworkSettings(address=ADDRESS, parent=PRIMARY)})
    codec = FakeCodec()
    effects = FakeEffects()
    context = build(make_context, directory=directory, codec=codec, effects=effects)

    response = await authorize_disclosure(
        pending(target=PRIMARY, network="0x4", req=None), DisclosureDecision(), context
    )

    assert response.access_token == "JWT"
    assert codec.created == [
        (PRIMARY, {"aud": CLIENT_ID, "type": "shareResp", "nad": ADDRESS, "own": OWN}, 86400, PURPOSE)
    ]
    assert codec.created[0][0] != ADDRESS
    assert effects.events == bookkeeping(PRIMARY)


@pytest.mark.asyncio
async def test_act_none_is_issued_by_target_without_account(make_context):
    codec = FakeCodec()
    effects = FakeEffects()
    context = build(make_context, codec=codec, effects=effects)
    request = pending(target=PRIMARY, account=None, act_type="none", req=None)

    await authorize_disclosure(request, DisclosureDecision(), context)

    assert codec.created == [
        (PRIMARY, {"aud": CLIENT_ID, "type": "shareResp", "own": OWN}, 86400, PURPOSE)
    ]
    assert effects.events == bookkeeping(PRIMARY)


@pytest.mark.asyncio
async def test_push_grant_is_signed_before_response(make_context):
    endpoint = "AWS://ENDPOINT"
    codec = FakeCodec()
    context = build(
        make_context,
        directory=FakeDirectory(enc_keys={ADDRESS: "PUBLIC_ENCRYPTION_KEY"}),
        notifications=FakeNotifications(allowed=True, endpoint=endpoint),
        codec=codec,
    )

    response = await authorize_disclosure(
        pending(network="0x4"), DisclosureDecision(push_permissions=True), context
    )

    assert response.access_token == "JWT"
    assert codec.created == [
        (
            ADDRESS,
            {"aud": CLIENT_ID, "type": "notifications", "value": endpoint},
            2 * 7 * 86400 + 86400,
            "Allow Canton of Zug to send your push notifications",
        ),
        (
            ADDRESS,
            {
                "aud": CLIENT_ID,
                "type": "shareResp",
                "nad": ADDRESS,
                "req": "JWT",
                "own": OWN,
                "publicEncKey": "PUBLIC_ENCRYPTION_KEY",
                "boxPub": "PUBLIC_ENCRYPTION_KEY",
                "capabilities": ["PUSHTOKEN"],
            },
            86400,
            PURPOSE,
        ),
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "push_permissions,allowed,endpoint",
    [
        (False, True, "AWS://ENDPOINT"),
        (True, False, "AWS://ENDPOINT"),
        (True, True, None),
    ],
)
async def test_push_grant_skipped_without_preconditions(make_context, push_permissions, allowed, endpoint):
    codec = FakeCodec()
    effects = FakeEffects()
    context = build(
        make_context,
        notifications=FakeNotifications(allowed=allowed, endpoint=endpoint),
        codec=codec,
        effects=effects,
    )

    response = await authorize_disclosure(
        pending(), DisclosureDecision(push_permissions=push_permissions), context
    )

    assert response.access_token == "JWT"
    assert len(codec.created) == 1
    payload = codec.created[0][1]
    assert payload["type"] == "shareResp"
    assert "capabilities" not in payload
    assert "publicEncKey" not in payload
    assert effects.events == bookkeeping(ADDRESS)


@pytest.mark.asyncio
async def test_only_requested_claims_are_released(make_context):
    claims = FakeClaims(claims=dict(OWN, email="hayek@example.org"))
    codec = FakeCodec()
    context = build(make_context, claims=claims, codec=codec)

    await authorize_disclosure(pending(), DisclosureDecision(released=["name", "email"]), context)

    assert claims.asked == [["name"]]
    assert codec.created[0][1]["own"] == {"name": "Friedrick Hayek"}


@pytest.mark.asyncio
async def test_verified_claims_are_attached(make_context):
    claims = FakeClaims(claims=OWN, attestations={"email": ["ATTESTATION"]})
    codec = FakeCodec()
    context = build(make_context, claims=claims, codec=codec)

    await authorize_disclosure(pending(verified=["email"]), DisclosureDecision(), context)

    assert codec.created[0][1]["verified"] == ["ATTESTATION"]


@pytest.mark.asyncio
async def test_errored_request_cannot_be_authorized(make_context):
    codec = FakeCodec()
    effects = FakeEffects()
    context = build(make_context, codec=codec, effects=effects)

    with pytest.raises(RequestNotAuthorizableError):
        await authorize_disclosure(
            pending(error="uPort does not support infuranet at the moment"), DisclosureDecision(), context
        )

    assert codec.created == []
    assert effects.events == []


@pytest.mark.asyncio
async def test_signing_failure_surfaces_without_side_effects(make_context):
    effects = FakeEffects()
    context = build(make_context, codec=FakeCodec(sign_error=SigningError("no key")), effects=effects)

    with pytest.raises(SigningError):
        await authorize_disclosure(pending(), DisclosureDecision(), context)

    assert effects.events == []


@pytest.mark.asyncio
async def test_claims_failure_surfaces_without_signing(make_context):
    codec = FakeCodec()
    effects = FakeEffects()
    context = build(
        make_context,
        claims=FakeClaims(error=ClaimsResolutionError("db down")),
        codec=codec,
        effects=effects,
    )

    with pytest.raises(ClaimsResolutionError):
        await authorize_disclosure(pending(), DisclosureDecision(), context)

    assert codec.created == []
    assert effects.events == []
