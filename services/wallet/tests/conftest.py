import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

_TMP = tempfile.mkdtemp(prefix="wallet-tests-")
os.environ.setdefault("DB_DSN", f"sqlite:///{_TMP}/wallet.db")
os.environ.setdefault("KEY_STORE_DIR", f"{_TMP}/keys")

from disclosure.context import DisclosureContext  # noqa: E402
from disclosure.errors import UnsupportedAccountTypeError  # noqa: E402
from disclosure.models import NetworkSettings, WalletSnapshot  # noqa: E402
from disclosure.networks import Networks  # noqa: E402
from disclosure.settings import Settings  # noqa: E402


class FakeDirectory:
    def __init__(self, current=None, settings=None, accounts=None, lookups=None, unsupported=(),
                 published=(), enc_keys=None, address_settings=None):
        self.current = current
        self.settings = settings or NetworkSettings(address=current, network="0x4")
        self.accounts = accounts or {}
        self.lookups = lookups or {}
        self.unsupported = set(unsupported)
        self.published = set(published)
        self.enc_keys = enc_keys or {}
        self.address_settings = address_settings or {}
        self.calls = []

    async def snapshot(self):
        self.calls.append(("snapshot",))
        return WalletSnapshot(current_address=self.current, settings=self.settings)

    async def accounts_for_network(self, network):
        self.calls.append(("accounts_for_network", network))
        return list(self.accounts.get(network, []))

    async def account_for_client_id_signer_type_and_network(self, network, client_id, signer_type):
        self.calls.append(("account_for_client_id_signer_type_and_network", network, client_id, signer_type))
        if (network, signer_type) in self.unsupported:
            raise UnsupportedAccountTypeError(network, signer_type)
        return self.lookups.get((network, client_id, signer_type))

    async def network_settings_for_address(self, address):
        return self.address_settings.get(address, NetworkSettings())

    async def has_published_did(self, address):
        return address in self.published

    async def public_enc_key(self, address):
        return self.enc_keys.get(address)


class FakeCodec:
    def __init__(self, verified=None, verify_error=None, sign_error=None):
        self.verified = verified
        self.verify_error = verify_error
        self.sign_error = sign_error
        self.created = []

    async def verify_token(self, raw_token):
        if self.verify_error:
            raise self.verify_error
        return {"payload": self.verified}

    async def create_token(self, issuer, payload, expires_in, purpose):
        if self.sign_error:
            raise self.sign_error
        self.created.append((issuer, payload, expires_in, purpose))
        return "PUSHTOKEN" if payload["type"] == "notifications" else "JWT"


class FakeClaims:
    def __init__(self, claims=None, attestations=None, error=None):
        self.claims = claims or {}
        self.attestations = attestations or {}
        self.error = error
        self.asked = []

    async def requested_claims(self, names):
        if self.error:
            raise self.error
        self.asked.append(list(names))
        return {name: self.claims[name] for name in names if name in self.claims}

    async def verified_claims_tokens(self, claim_types):
        return [token for claim_type in claim_types for token in self.attestations.get(claim_type, [])]


class FakeEffects:
    def __init__(self, publishing=False, publish_error=None, refresh_error=None):
        self.events = []
        self.publishing = publishing
        self.publish_error = publish_error
        self.refresh_error = refresh_error

    async def update_interaction_stats(self, subject, counterpart, kind):
        self.events.append(("stats", subject, counterpart, kind))

    async def store_connection(self, subject, connection_type, counterpart):
        self.events.append(("connection", subject, connection_type, counterpart))

    async def update_activity(self, activity_id, **fields):
        self.events.append(("activity", activity_id, fields))

    async def store_request(self, request):
        self.events.append(("store", request.id))

    async def clear_request(self, request_id):
        self.events.append(("clear", request_id))

    async def refresh_external_profile(self, client_id):
        self.events.append(("refresh", client_id))
        if self.refresh_error:
            raise self.refresh_error

    async def publication_status(self):
        return self.publishing, self.publish_error

    async def save_public_identity(self, address):
        self.events.append(("publish", address))

    def kinds(self):
        return [event[0] for event in self.events]


class FakeProfiles:
    def __init__(self, names=None):
        self.names = names or {}

    async def display_name(self, client_id):
        return self.names.get(client_id, client_id)


class FakeNotifications:
    def __init__(self, allowed=False, endpoint=None):
        self.allowed = allowed
        self.endpoint = endpoint

    async def notifications_allowed(self):
        return self.allowed

    async def endpoint_arn(self):
        return self.endpoint


@pytest.fixture
def networks():
    return Networks(Settings(extra_networks=""))


@pytest.fixture
def make_context(networks):
    def _make(directory=None, codec=None, claims=None, effects=None, profiles=None, notifications=None):
        return DisclosureContext(
            networks=networks,
            directory=directory or FakeDirectory(),
            codec=codec or FakeCodec(),
            claims=claims or FakeClaims(),
            effects=effects or FakeEffects(),
            profiles=profiles or FakeProfiles(),
            notifications=notifications or FakeNotifications(),
        )

    return _make
