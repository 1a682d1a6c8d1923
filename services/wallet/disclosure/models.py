from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActType(str, Enum):
    none = "none"
    general = "general"
    segregated = "segregated"
    keypair = "keypair"
    devicekey = "devicekey"


class SignerType(str, Enum):
    identity_manager = "MetaIdentityManager"
    keypair = "KeyPair"
    devicekey = "DeviceKey"


class Account(BaseModel):
    address: str
    parent: Optional[str] = None
    network: Optional[str] = None
    client_id: Optional[str] = None
    signer_type: Optional[str] = None
    authorized_clients: List[str] = []

    def authorized_for(self, client_id: str) -> bool:
        return client_id in self.authorized_clients


class NetworkSettings(BaseModel):
    address: Optional[str] = None
    network: Optional[str] = None
    parent: Optional[str] = None


class WalletSnapshot(BaseModel):
    """Wallet state read once at the start of a resolution."""

    current_address: Optional[str] = None
    settings: NetworkSettings = NetworkSettings()


class ShareRequestPayload(BaseModel):
    model_config = ConfigDict(extra="allow")
    type: str = "shareReq"
    iss: str
    iat: Optional[int] = None
    callback: Optional[str] = None
    requested: List[str] = []
    verified: Optional[List[str]] = None
    act: Optional[ActType] = None
    net: Optional[str] = None


class PendingDisclosureRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)
    id: Optional[str] = None
    target: Optional[str] = None
    account: Optional[str] = None
    account_authorized: Optional[bool] = Field(default=None, alias="accountAuthorized")
    client_id: str
    network: Optional[str] = None
    callback_url: Optional[str] = None
    act_type: ActType = Field(alias="actType")
    req: Optional[str] = None
    requested: List[str] = []
    validated_signature: bool = Field(default=False, alias="validatedSignature")
    verified: Optional[List[str]] = None
    legacy_ms: Optional[bool] = Field(default=None, alias="legacyMS")
    error: Optional[str] = None

    def as_record(self) -> Dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class DisclosureDecision(BaseModel):
    released: Optional[List[str]] = None
    push_permissions: bool = False


class DisclosureResponse(BaseModel):
    access_token: str


class DIDDoc(BaseModel):
    did: str
    public_sign: str
    public_agree: str
    service_endpoint: str


class BootstrapIdentityResp(BaseModel):
    address: str
    did_doc: DIDDoc
    current: bool


class AccountRegistration(BaseModel):
    address: str
    parent: Optional[str] = None
    network: str
    client_id: Optional[str] = None
    signer_type: Optional[SignerType] = None
    authorized_clients: List[str] = []


class ClientRegistration(BaseModel):
    client_id: str
    name: Optional[str] = None
    public_jwk: Dict[str, object]


class ClaimsUpdate(BaseModel):
    claims: Dict[str, object]


class AttestationRequest(BaseModel):
    claim_type: str
    token: str


class NotificationRegistration(BaseModel):
    endpoint_arn: Optional[str] = None
    allowed: bool = True


class DisclosureRequestIn(BaseModel):
    request_token: str


class AuthorizeRequest(BaseModel):
    released: Optional[List[str]] = None
    push_permissions: bool = False
