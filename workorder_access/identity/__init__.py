"""
Caller identity: token verification and dual-provider resolution.

Use ``IdentityVerifier.authenticate`` with a bearer token string to get a
``Caller``; the verifier picks a resolver by the token's ``provider`` claim.
"""

from .context import Caller, Provider
from .resolvers import DirectoryUser, ExternalResolver, IdentityResolver, InternalTestResolver, UserDirectory
from .tokens import TokenConfig, TokenValidationError, TokenVerifier
from .verifier import IdentityVerifier, check_claims

__all__ = [
    "Caller",
    "DirectoryUser",
    "ExternalResolver",
    "IdentityResolver",
    "IdentityVerifier",
    "InternalTestResolver",
    "Provider",
    "TokenConfig",
    "TokenValidationError",
    "TokenVerifier",
    "UserDirectory",
    "check_claims",
]
