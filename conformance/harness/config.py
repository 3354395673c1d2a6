"""
Harness configuration, read from the environment and overridden by CLI flags.

Two clients are known: the Python engine, run in-process, and a Clarity
deployment reached through a simnet bridge over HTTP.
"""

import os
from dataclasses import dataclass, field
from typing import Dict

SPEC_CLIENT = "escrow-spec"
CLARITY_CLIENT = "clarity"
IN_PROCESS = "inproc"

_TRUTHY = ("true", "1", "yes")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in _TRUTHY


@dataclass
class ClientConfig:
    name: str
    endpoint: str
    enabled: bool = True
    timeout: float = 30.0

    @property
    def in_process(self) -> bool:
        return self.endpoint == IN_PROCESS


def default_clients(clarity_endpoint: str, timeout: float) -> Dict[str, ClientConfig]:
    return {
        SPEC_CLIENT: ClientConfig(name="Escrow Python spec", endpoint=IN_PROCESS),
        CLARITY_CLIENT: ClientConfig(
            name="Clarity contract (simnet bridge)",
            endpoint=clarity_endpoint.rstrip("/"),
            enabled=bool(clarity_endpoint),
            timeout=timeout,
        ),
    }


@dataclass
class HarnessConfig:
    clients: Dict[str, ClientConfig] = field(default_factory=dict)
    reference_client: str = SPEC_CLIENT
    vector_dir: str = "vectors"
    result_dir: str = "results"
    stop_on_first_failure: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Build the configuration from CLARITY_ENDPOINT, VECTOR_DIR and friends."""
        timeout = float(os.environ.get("REQUEST_TIMEOUT", "30"))
        return cls(
            clients=default_clients(os.environ.get("CLARITY_ENDPOINT", "http://localhost:8091"), timeout),
            reference_client=os.environ.get("REFERENCE_CLIENT", SPEC_CLIENT),
            vector_dir=os.environ.get("VECTOR_DIR", "vectors"),
            result_dir=os.environ.get("RESULT_DIR", "results"),
            stop_on_first_failure=_env_flag("STOP_ON_FIRST_FAILURE"),
            verbose=_env_flag("VERBOSE"),
        )

    def get_enabled_clients(self) -> Dict[str, ClientConfig]:
        return {name: c for name, c in self.clients.items() if c.enabled}
