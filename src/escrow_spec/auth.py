"""Caller identity checks and the dispute resolver policy."""

from __future__ import annotations

from .errors import ErrorCode, EngineError
from .settings import EngineSettings, ResolverPolicy
from .types import ContractCall, Entry


def require_caller(call: ContractCall, principal: bytes, role: str) -> None:
    if call.caller != principal:
        raise EngineError(ErrorCode.UNAUTHORIZED, f"caller is not the {role}")


def require_distinct(caller: bytes, other: bytes, what: str) -> None:
    if caller == other:
        raise EngineError(ErrorCode.SELF_OPERATION, f"caller cannot be the {what}")


def allowed_resolvers(settings: EngineSettings, entry: Entry) -> frozenset[bytes]:
    policy = settings.resolver_policy
    if policy == ResolverPolicy.ARBITER:
        if settings.arbiter is None:
            return frozenset()
        return frozenset({settings.arbiter})
    if policy == ResolverPolicy.INITIATOR:
        return frozenset({entry.initiator})
    if policy == ResolverPolicy.COUNTERPARTY:
        return frozenset({entry.counterparty})
    if policy == ResolverPolicy.EITHER_PARTY:
        return frozenset({entry.initiator, entry.counterparty})
    raise EngineError(ErrorCode.INTERNAL_ERROR, f"unhandled resolver policy: {policy}")


def require_resolver(settings: EngineSettings, call: ContractCall, entry: Entry) -> None:
    resolvers = allowed_resolvers(settings, entry)
    if not resolvers:
        raise EngineError(ErrorCode.UNAUTHORIZED, "no arbiter configured")
    if call.caller not in resolvers:
        raise EngineError(
            ErrorCode.UNAUTHORIZED,
            f"caller may not resolve disputes under {settings.resolver_policy.value} policy",
        )
