"""Tenant scope derivation and the authorization predicates handlers rely on."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional, Tuple, TypeVar

from fsapi.auth.resolvers import TenantResolver
from fsapi.core.errors import AuthorizationError
from fsapi.core.logger import get_logger
from fsapi.core.metrics import record_authorization_denied


ALLOWED_CONTEXTS_HEADER = "X-Allowed-Contexts"
WILDCARD_CONTEXT = "*"

logger = get_logger("fsapi.auth.scope")

RowT = TypeVar("RowT", bound=Mapping[str, str])


@dataclass(frozen=True)
class TenantScope:
    """Either unrestricted or a fixed, ordered set of allowed tenants."""

    unrestricted: bool = True
    tenants: Tuple[str, ...] = ()

    @classmethod
    def unrestricted_scope(cls) -> "TenantScope":
        return cls(unrestricted=True, tenants=())

    @classmethod
    def restricted(cls, tenants: Iterable[str]) -> "TenantScope":
        ordered: List[str] = []
        for tenant in tenants:
            if tenant not in ordered:
                ordered.append(tenant)
        return cls(unrestricted=False, tenants=tuple(ordered))

    def is_allowed(self, tenant: Optional[str]) -> bool:
        if self.unrestricted:
            return True
        if not tenant:
            return False
        return tenant in self.tenants

    def describe_allowed(self) -> str:
        return ", ".join(self.tenants)


@dataclass(frozen=True)
class RequestContext:
    """Per-request state handed explicitly to every handler."""

    request_id: str
    scope: TenantScope = field(default_factory=TenantScope.unrestricted_scope)

    @property
    def unrestricted(self) -> bool:
        return self.scope.unrestricted


def parse_scope(declaration: Optional[str]) -> TenantScope:
    """Derive the scope from an ``X-Allowed-Contexts`` value.

    No declaration, or the wildcard anywhere in the list, means unrestricted.
    A declaration made only of separators yields an empty restricted scope.
    """

    if declaration is None or declaration == "":
        return TenantScope.unrestricted_scope()

    tenants: List[str] = []
    for token in declaration.split(","):
        trimmed = token.strip()
        if not trimmed:
            continue
        if trimmed == WILDCARD_CONTEXT:
            return TenantScope.unrestricted_scope()
        tenants.append(trimmed)
    return TenantScope.restricted(tenants)


def filter_rows(scope: TenantScope, rows: List[RowT], resolver: TenantResolver) -> List[RowT]:
    """Keep rows whose tenant, as derived by ``resolver``, is in scope."""

    if scope.unrestricted:
        return list(rows)
    return [row for row in rows if scope.is_allowed(resolver.tenant_of(row))]


def deny(message: str, *, entity: str) -> AuthorizationError:
    record_authorization_denied(entity=entity)
    logger.warning("authorization_denied", entity=entity, reason=message)
    return AuthorizationError(message)


def require_allowed(
    scope: TenantScope,
    tenant: str,
    *,
    entity: str,
    describe: Callable[[str, str], str],
) -> None:
    """Raise ``AuthorizationError`` unless ``tenant`` is in scope.

    ``describe(tenant, allowed)`` builds the caller-facing message; ``allowed``
    is the comma-joined allowed set.
    """

    if scope.is_allowed(tenant):
        return
    raise deny(describe(tenant, scope.describe_allowed()), entity=entity)
