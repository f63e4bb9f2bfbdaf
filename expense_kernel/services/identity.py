"""
Identity resolution.

The kernel never sees passwords or tokens.  An outer auth layer validates
the credential and hands over its claims; an IdentityProvider turns those
claims into the Principal every operation runs as.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from uuid import UUID

from expense_kernel.domain.authorization import require_active
from expense_kernel.domain.values import Principal, RequestContext
from expense_kernel.exceptions import AuthenticationError
from expense_kernel.logging_config import get_logger
from expense_kernel.store.contract import DirectoryStore

logger = get_logger("services.identity")


@dataclass(frozen=True)
class Credential:
    """Claims of an already-validated credential (e.g. token subject)."""

    user_id: UUID
    tenant_id: UUID


@runtime_checkable
class IdentityProvider(Protocol):
    def resolve(self, credential: Credential) -> Principal:
        """Return the active principal for ``credential``.

        Raises:
            AuthenticationError: The claims name no known user.
            InactivePrincipalError: The user is deactivated.
        """
        ...


class DirectoryIdentityProvider:
    """Resolves principals from the tenant user directory.

    Role and active flag are read fresh on every call, so a role change or
    deactivation takes effect on the user's next request.
    """

    def __init__(self, directory: DirectoryStore):
        self._directory = directory

    def resolve(self, credential: Credential) -> Principal:
        user = self._directory.get_user(credential.tenant_id, credential.user_id)
        if user is None:
            logger.warning(
                "authentication_failed",
                extra={
                    "user_id": str(credential.user_id),
                    "tenant_id": str(credential.tenant_id),
                },
            )
            raise AuthenticationError("unknown user")
        principal = Principal(
            user_id=user.id,
            tenant_id=user.tenant_id,
            role=user.role,
            is_active=user.is_active,
            name=user.name,
        )
        require_active(principal)
        return principal

    def context_for(self, credential: Credential) -> RequestContext:
        """Resolve and wrap in the per-request context."""
        return RequestContext.for_principal(self.resolve(credential))
