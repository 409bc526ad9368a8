"""Per-entity tenant resolvers.

Each entity kind carries its tenant in a different field and some need the
value sub-parsed. The authorization predicates stay entity-agnostic and ask a
resolver for ``tenant_of(row)``.
"""

from __future__ import annotations

from typing import Any, Mapping

from fsapi.esl.parsers import extract_token


DOMAIN_TOKEN_KEY = "domain_name"


def domain_of(name_at_domain: str) -> str:
    """``support@acme.com`` -> ``acme.com``; no ``@`` yields an empty string."""

    _, sep, domain = (name_at_domain or "").partition("@")
    return domain if sep else ""


class TenantResolver:
    """Reads ``field`` from a row or request body and derives the tenant from it."""

    entity = "entity"

    def __init__(self, field: str) -> None:
        self.field = field

    def tenant_of(self, source: Mapping[str, Any]) -> str:
        value = source.get(self.field)
        if value is None:
            return ""
        return self.derive(str(value))

    def derive(self, value: str) -> str:
        return value


class CallResolver(TenantResolver):
    entity = "Call"

    def __init__(self) -> None:
        super().__init__("accountcode")


class QueueNameResolver(TenantResolver):
    """Queues and tiers are named ``local-part@tenant``."""

    entity = "Queue"

    def __init__(self, field: str = "name") -> None:
        super().__init__(field)

    def derive(self, value: str) -> str:
        return domain_of(value)


class AgentContactResolver(TenantResolver):
    """Agent rows only expose their tenant inside the dial string in ``contact``."""

    entity = "Agent"

    def __init__(self) -> None:
        super().__init__("contact")

    def derive(self, value: str) -> str:
        return extract_token(value, DOMAIN_TOKEN_KEY)


class AgentRequestResolver(TenantResolver):
    """Agent writes take the tenant from the request body's ``domain``."""

    entity = "Agent"

    def __init__(self) -> None:
        super().__init__("domain")


class RegistrationResolver(TenantResolver):
    entity = "Registration"

    def __init__(self) -> None:
        super().__init__("realm")


CALLS = CallResolver()
QUEUES = QueueNameResolver("name")
TIERS = QueueNameResolver("queue")
AGENT_LIST = AgentContactResolver()
AGENT_WRITE = AgentRequestResolver()
REGISTRATIONS = RegistrationResolver()
