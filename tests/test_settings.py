"""Engine settings loading."""

from __future__ import annotations

import pytest

from escrow_spec.config import RESOLUTION_WINDOW
from escrow_spec.settings import EngineSettings, ResolverPolicy
from escrow_spec.test_accounts import DEPLOYER


def test_defaults() -> None:
    settings = EngineSettings()
    assert settings.resolution_window == RESOLUTION_WINDOW == 144
    assert settings.resolver_policy == ResolverPolicy.ARBITER
    assert settings.arbiter is None


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("ESCROW_RESOLUTION_WINDOW", "10")
    monkeypatch.setenv("ESCROW_RESOLVER_POLICY", "Either_Party")
    monkeypatch.setenv("ESCROW_ARBITER", "0x" + DEPLOYER.hex())
    settings = EngineSettings.from_env()
    assert settings.resolution_window == 10
    assert settings.resolver_policy == ResolverPolicy.EITHER_PARTY
    assert settings.arbiter == DEPLOYER


def test_from_env_unset(monkeypatch) -> None:
    for name in ("ESCROW_RESOLUTION_WINDOW", "ESCROW_RESOLVER_POLICY", "ESCROW_ARBITER"):
        monkeypatch.delenv(name, raising=False)
    assert EngineSettings.from_env() == EngineSettings()


def test_from_yaml_section(tmp_path) -> None:
    path = tmp_path / "escrow.yaml"
    path.write_text(
        "escrow:\n"
        "  resolution_window: 288\n"
        "  resolver_policy: initiator\n"
        f"  arbiter: '{DEPLOYER.hex()}'\n"
    )
    settings = EngineSettings.from_yaml(path)
    assert settings.resolution_window == 288
    assert settings.resolver_policy == ResolverPolicy.INITIATOR
    assert settings.arbiter == DEPLOYER


def test_from_yaml_flat_and_empty(tmp_path) -> None:
    flat = tmp_path / "flat.yaml"
    flat.write_text("resolver_policy: counterparty\n")
    assert EngineSettings.from_yaml(flat).resolver_policy == ResolverPolicy.COUNTERPARTY

    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert EngineSettings.from_yaml(empty) == EngineSettings()


def test_to_dict_round_trip() -> None:
    settings = EngineSettings(resolution_window=5, resolver_policy="counterparty", arbiter=DEPLOYER)
    assert EngineSettings.from_dict(settings.to_dict()) == settings


@pytest.mark.parametrize(
    "kwargs",
    [
        {"resolution_window": 0},
        {"resolver_policy": "judge"},
        {"arbiter": b"\x01" * 31},
    ],
)
def test_invalid_settings(kwargs) -> None:
    with pytest.raises(ValueError):
        EngineSettings(**kwargs)


def test_invalid_yaml_document(tmp_path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        EngineSettings.from_yaml(path)
