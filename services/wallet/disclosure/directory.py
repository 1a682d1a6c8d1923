"""Read access to the wallet's locally controlled accounts."""

import logging
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from disclosure import storage
from disclosure.errors import UnsupportedAccountTypeError
from disclosure.models import Account, NetworkSettings, WalletSnapshot
from disclosure.networks import Networks

log = logging.getLogger(__name__)

CURRENT_ADDRESS = "current_address"


class IdentityDirectory:
    def __init__(self, Session, networks: Networks, default_network: str):
        self.Session = Session
        self.networks = networks
        self.default_network = default_network

    async def current_address(self) -> Optional[str]:
        return await run_in_threadpool(storage.get_state, self.Session, CURRENT_ADDRESS)

    async def set_current_address(self, address: str):
        await run_in_threadpool(storage.set_state, self.Session, CURRENT_ADDRESS, address)

    async def network_settings_for_address(self, address: Optional[str]) -> NetworkSettings:
        if not address:
            return NetworkSettings(network=self.default_network)
        account = await run_in_threadpool(storage.get_account, self.Session, address)
        if not account:
            return NetworkSettings(address=address, network=self.default_network)
        return NetworkSettings(
            address=account.address,
            network=account.network or self.default_network,
            parent=account.parent,
        )

    async def network_settings(self) -> NetworkSettings:
        return await self.network_settings_for_address(await self.current_address())

    async def snapshot(self) -> WalletSnapshot:
        current = await self.current_address()
        return WalletSnapshot(
            current_address=current,
            settings=await self.network_settings_for_address(current),
        )

    async def accounts_for_network(self, network: str) -> List[Account]:
        return await run_in_threadpool(storage.list_accounts_for_network, self.Session, network)

    async def account_for_client_id_signer_type_and_network(
        self, network: str, client_id: str, signer_type: str
    ) -> Optional[Account]:
        signer_type = getattr(signer_type, "value", signer_type)
        if not self.networks.supports_signer_type(network, signer_type):
            raise UnsupportedAccountTypeError(network, signer_type)
        return await run_in_threadpool(storage.find_account, self.Session, network, client_id, signer_type)

    async def has_published_did(self, address: str) -> bool:
        _, published = await run_in_threadpool(storage.get_account_flags, self.Session, address)
        return published

    async def public_enc_key(self, address: str) -> Optional[str]:
        enc_key, _ = await run_in_threadpool(storage.get_account_flags, self.Session, address)
        return enc_key
