from typing import Dict, List

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from disclosure import storage
from disclosure.errors import ClaimsResolutionError


class ClaimsProvider:
    """Self-asserted claims and stored attestations of the wallet owner."""

    def __init__(self, Session):
        self.Session = Session

    async def requested_claims(self, names: List[str]) -> Dict[str, object]:
        try:
            return await run_in_threadpool(storage.get_claims, self.Session, names)
        except SQLAlchemyError as exc:
            raise ClaimsResolutionError("could not read stored claims") from exc

    async def verified_claims_tokens(self, claim_types: List[str]) -> List[str]:
        try:
            return await run_in_threadpool(storage.get_attestations, self.Session, claim_types)
        except SQLAlchemyError as exc:
            raise ClaimsResolutionError("could not read stored attestations") from exc
