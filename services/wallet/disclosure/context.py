from dataclasses import dataclass

from disclosure.claims import ClaimsProvider
from disclosure.crypto import TokenCodec
from disclosure.directory import IdentityDirectory
from disclosure.effects import SideEffects
from disclosure.networks import Networks
from disclosure.notifications import Notifications
from disclosure.profiles import ProfileRegistry


@dataclass
class DisclosureContext:
    """Collaborators a disclosure request is resolved and answered with."""

    networks: Networks
    directory: IdentityDirectory
    codec: TokenCodec
    claims: ClaimsProvider
    effects: SideEffects
    profiles: ProfileRegistry
    notifications: Notifications
