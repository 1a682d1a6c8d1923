"""Exceptions raised while resolving and answering disclosure requests."""


class DisclosureError(Exception):
    """Base exception for disclosure request handling."""


class TokenVerificationError(DisclosureError):
    """Request token signature, format or expiry is invalid."""

    def __init__(self, message: str = "Could not verify the signature of request"):
        super().__init__(message)


class WrongRequestTypeError(DisclosureError):
    """Token verified but is not a disclosure request."""

    def __init__(self, message: str = "Request was not of correct type"):
        super().__init__(message)


class UnsupportedAccountTypeError(DisclosureError):
    """Requested signer kind is not available on the network."""

    def __init__(self, network: str, signer_type: str):
        self.network = network
        self.signer_type = signer_type
        super().__init__(f"{signer_type} accounts are not available on {network}")


class RequestNotAuthorizableError(DisclosureError):
    """Authorization attempted on a request that failed to resolve."""


class SigningError(DisclosureError):
    """No usable key for the issuer, or signing failed."""


class ClaimsResolutionError(DisclosureError):
    """Stored claims could not be read."""
