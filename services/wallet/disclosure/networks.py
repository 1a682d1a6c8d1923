"""Network support table and account-kind availability per network."""

from typing import Dict, Optional

from disclosure.models import ActType, SignerType
from disclosure.settings import Settings

NETWORK_NAMES: Dict[str, str] = {
    "0x1": "mainnet",
    "0x3": "ropsten",
    "0x4": "rinkeby",
    "0x2a": "kovan",
    "0x16b2": "infuranet",
    "0xdeadbeef": "local",
}

UNSUPPORTED_NETWORKS = {"0x16b2"}

# identity manager contracts were never deployed to these networks
NO_IDENTITY_MANAGER = {"0x1"}

SIGNER_TYPES: Dict[str, SignerType] = {
    ActType.segregated.value: SignerType.identity_manager,
    ActType.keypair.value: SignerType.keypair,
    ActType.devicekey.value: SignerType.devicekey,
}


def _key(network_id: str) -> str:
    return network_id.lower()


class Networks:
    def __init__(self, settings: Settings):
        self.brand = settings.wallet_name
        self.names = dict(NETWORK_NAMES)
        self.supported = {key for key in self.names if key not in UNSUPPORTED_NETWORKS}
        for entry in settings.extra_networks.split(","):
            if "=" not in entry:
                continue
            network_id, name = (part.strip() for part in entry.split("=", 1))
            self.names[_key(network_id)] = name
            self.supported.add(_key(network_id))

    def name(self, network_id: str) -> str:
        return self.names.get(_key(network_id), network_id)

    def is_supported(self, network_id: str) -> bool:
        return _key(network_id) in self.supported

    def supports_signer_type(self, network_id: str, signer_type: str) -> bool:
        if not self.is_supported(network_id):
            return False
        if signer_type == SignerType.identity_manager.value:
            return _key(network_id) not in NO_IDENTITY_MANAGER
        return True

    def unsupported_network_error(self, network_id: str) -> str:
        return f"{self.brand} does not support {self.name(network_id)} at the moment"

    def unsupported_account_error(self, network_id: str) -> str:
        return (
            f"{self.brand} does not support smart contract accounts on "
            f"{self.name(network_id)} at the moment"
        )


def signer_type_for(act_type: str) -> Optional[SignerType]:
    return SIGNER_TYPES.get(getattr(act_type, "value", act_type))
