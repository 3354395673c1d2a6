"""
Deployment-time settings for the escrow engine.

Settings are fixed when the contract state is created and travel with it,
so every call in a replay sees the same resolution window and resolver
policy.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .config import PRINCIPAL_SIZE, RESOLUTION_WINDOW


class ResolverPolicy(Enum):
    """Who may settle a dispute."""

    ARBITER = "arbiter"
    INITIATOR = "initiator"
    COUNTERPARTY = "counterparty"
    EITHER_PARTY = "either_party"


@dataclass
class EngineSettings:
    """Escrow engine settings."""
    resolution_window: int = RESOLUTION_WINDOW
    resolver_policy: ResolverPolicy = ResolverPolicy.ARBITER
    arbiter: Optional[bytes] = None

    def __post_init__(self) -> None:
        if isinstance(self.resolver_policy, str):
            self.resolver_policy = _parse_policy(self.resolver_policy)
        if self.resolution_window <= 0:
            raise ValueError("resolution_window must be > 0")
        if self.arbiter is not None and len(self.arbiter) != PRINCIPAL_SIZE:
            raise ValueError(f"arbiter must be {PRINCIPAL_SIZE} bytes")

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Load settings from environment variables."""
        settings = cls()

        window = os.environ.get("ESCROW_RESOLUTION_WINDOW")
        policy = os.environ.get("ESCROW_RESOLVER_POLICY")
        arbiter = os.environ.get("ESCROW_ARBITER")

        return cls(
            resolution_window=int(window) if window else settings.resolution_window,
            resolver_policy=_parse_policy(policy) if policy else settings.resolver_policy,
            arbiter=_parse_principal(arbiter) if arbiter else None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineSettings":
        arbiter = data.get("arbiter")
        return cls(
            resolution_window=int(data.get("resolution_window", RESOLUTION_WINDOW)),
            resolver_policy=_parse_policy(data.get("resolver_policy", ResolverPolicy.ARBITER.value)),
            arbiter=_parse_principal(arbiter) if arbiter else None,
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EngineSettings":
        """Load settings from a YAML document with an optional `escrow` section."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping")
        return cls.from_dict(data.get("escrow", data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolution_window": self.resolution_window,
            "resolver_policy": self.resolver_policy.value,
            "arbiter": self.arbiter.hex() if self.arbiter is not None else None,
        }


def _parse_policy(value: str) -> ResolverPolicy:
    try:
        return ResolverPolicy(value.strip().lower())
    except ValueError:
        raise ValueError(f"unknown resolver policy: {value!r}") from None


def _parse_principal(value: str) -> bytes:
    v = value[2:] if value.startswith(("0x", "0X")) else value
    raw = bytes.fromhex(v)
    if len(raw) != PRINCIPAL_SIZE:
        raise ValueError(f"principal must be {PRINCIPAL_SIZE} bytes, got {len(raw)}")
    return raw
