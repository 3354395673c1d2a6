#!/usr/bin/env python3
"""
Escrow Conformance Test Runner

Replays generated vectors against the in-process Python engine and any
contract implementation exposed over HTTP, then compares every result
with the recorded expectation and with the reference client.
"""

import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp
import click
import yaml

from comparator import ComparisonResult, ResultComparator
from config import CLARITY_CLIENT, SPEC_CLIENT, ClientConfig, HarnessConfig
from reporter import ConformanceReport, ReportGenerator, SuiteResult, VectorResult

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from escrow_spec.encoding import decode_call  # noqa: E402
from escrow_spec.errors import EngineError, ErrorCode  # noqa: E402
from escrow_spec.state_digest import compute_state_digest  # noqa: E402
from escrow_spec.state_transition import apply_call, mine_block  # noqa: E402
from escrow_spec.types import ContractState  # noqa: E402
from fixtures_io import result_to_json, state_from_json, state_to_json  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _from_hex(wire_hex: str) -> bytes:
    try:
        return bytes.fromhex(wire_hex)
    except ValueError:
        raise EngineError(ErrorCode.INVALID_FORMAT, "wire_hex is not valid hex") from None


def _receipt(result_json: Dict[str, Any]) -> Dict[str, Any]:
    error = result_json.get("error")
    return {
        "success": bool(result_json["ok"]),
        "error_code": int(ErrorCode[error]) if error else 0,
        "value": result_json.get("value"),
    }


class SpecClient:
    """The Python engine, driven in-process behind the client interface."""

    def __init__(self, config: ClientConfig):
        self.config = config
        self.state = ContractState()

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def reset_state(self) -> bool:
        self.state = ContractState()
        return True

    async def load_state(self, state: Dict[str, Any]) -> Optional[str]:
        try:
            self.state = state_from_json(state)
        except (KeyError, ValueError) as e:
            logger.error(f"[{self.config.name}] Load state failed: {e}")
            return None
        return await self.get_state_digest()

    async def get_state_digest(self) -> Optional[str]:
        return compute_state_digest(state_to_json(self.state))

    async def execute_call(self, wire_hex: str) -> Dict[str, Any]:
        try:
            call = decode_call(_from_hex(wire_hex))
        except EngineError as e:
            return {"success": False, "error_code": int(e.code)}
        self.state, result = apply_call(self.state, call)
        out = _receipt(result_to_json(result))
        out["state_digest"] = await self.get_state_digest()
        return out

    async def execute_block(self, wire_hexes: List[str]) -> Dict[str, Any]:
        try:
            calls = [decode_call(_from_hex(h)) for h in wire_hexes]
        except EngineError as e:
            return {"success": False, "error_code": int(e.code)}
        self.state, receipts = mine_block(self.state, calls)
        return {
            "success": True,
            "receipts": [_receipt(result_to_json(r)) for r in receipts],
            "state_digest": await self.get_state_digest(),
        }


class ConformanceClient:
    """HTTP client for a contract implementation behind a simnet bridge."""

    def __init__(self, config: ClientConfig):
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self.session:
            await self.session.close()

    async def _request(self, method: str, path: str, payload: Any = None) -> Dict[str, Any]:
        """Send one bridge request; transport failures become a failed result."""
        try:
            async with self.session.request(
                method, f"{self.config.endpoint}{path}", json=payload
            ) as resp:
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] {method} {path} failed: {e}")
            return {"success": False, "error": str(e)}

    async def reset_state(self) -> bool:
        data = await self._request("POST", "/state/reset")
        return bool(data.get("success"))

    async def load_state(self, state: Dict[str, Any]) -> Optional[str]:
        """Load an exported state; returns its digest, or None when rejected."""
        data = await self._request("POST", "/state/load", state)
        return data.get("state_digest") if data.get("success") else None

    async def get_state_digest(self) -> Optional[str]:
        data = await self._request("GET", "/state/digest")
        return data.get("state_digest")

    async def execute_call(self, wire_hex: str) -> Dict[str, Any]:
        return await self._request("POST", "/call/execute", {"wire_hex": wire_hex})

    async def execute_block(self, wire_hexes: List[str]) -> Dict[str, Any]:
        return await self._request("POST", "/block/execute", {"calls": wire_hexes})


def make_client(config: ClientConfig):
    if config.in_process:
        return SpecClient(config)
    return ConformanceClient(config)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class ConformanceHarness:
    """Replays vector suites on every enabled client."""

    def __init__(self, config: HarnessConfig):
        self.config = config
        self.clients: Dict[str, Any] = {}
        self.comparator = ResultComparator(reference_client=config.reference_client)
        self.reporter = ReportGenerator(config.result_dir)

    async def setup(self) -> None:
        for name, client_config in self.config.get_enabled_clients().items():
            client = make_client(client_config)
            await client.connect()
            self.clients[name] = client
            logger.info(f"Using {client_config.name} ({client_config.endpoint})")
        if self.comparator.reference_client not in self.clients:
            raise click.UsageError(f"reference client {self.comparator.reference_client!r} is not enabled")

    async def teardown(self) -> None:
        await asyncio.gather(*(client.close() for client in self.clients.values()))

    async def _prepare(self, pre_state: Optional[Dict[str, Any]]) -> Optional[ComparisonResult]:
        """Reset every client and load the vector's pre-state, if any."""
        resets = await asyncio.gather(*(c.reset_state() for c in self.clients.values()))
        if not all(resets):
            raise RuntimeError("failed to reset clients")
        if not pre_state:
            return None

        digests = {}
        for name, client in self.clients.items():
            digest = await client.load_state(pre_state)
            if digest is None:
                logger.error(f"{name} rejected the pre-state")
                continue
            digests[name] = digest
        if self.comparator.reference_client not in digests:
            raise RuntimeError("reference client failed to load pre-state")
        return self.comparator.compare_state_digests(digests, "pre_state")

    async def _execute(self, vector_input: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        # Clients share no state, but results are collected in a stable order.
        block = vector_input.get("kind") == "block"
        results = {}
        for name, client in self.clients.items():
            if block:
                results[name] = await client.execute_block(vector_input["wire_hex"])
            else:
                results[name] = await client.execute_call(vector_input["wire_hex"])
        return results

    async def run_vector(self, vector: Dict[str, Any], suite_name: str = "") -> VectorResult:
        name = vector.get("name", "unknown")
        started = time.perf_counter()

        def finish(passed: bool, **extra: Any) -> VectorResult:
            return VectorResult(name, suite_name, passed, _elapsed_ms(started), **extra)

        if vector.get("runnable") is False:
            return finish(True, skipped=True)

        try:
            loaded = await self._prepare(vector.get("pre_state"))
            if loaded is not None and loaded.has_divergences:
                return finish(False, comparison=loaded, error="pre-state digests differ")

            vector_input = vector.get("input") or {}
            if not vector_input.get("wire_hex"):
                return finish(True)

            results = await self._execute(vector_input)
            comparison = self.comparator.compare_results(results, name)
            if vector.get("expected"):
                comparison.merge(self.comparator.compare_expected(
                    vector["expected"],
                    results[self.comparator.reference_client],
                    self.comparator.reference_client,
                    name,
                ))
            return finish(not comparison.has_divergences, comparison=comparison)
        except (aiohttp.ClientError, RuntimeError, KeyError, ValueError) as e:
            logger.exception(f"Error running vector {name}")
            return finish(False, error=str(e))

    async def run_suite(self, suite_path: Path) -> SuiteResult:
        suite = SuiteResult(suite_name=suite_path.stem, execution_time_ms=0.0)
        started = time.perf_counter()
        logger.info(f"Suite {suite.suite_name}")

        data = yaml.safe_load(suite_path.read_text()) or {}
        for vector in data.get("test_vectors", []):
            result = await self.run_vector(vector, suite.suite_name)
            suite.vector_results.append(result)

            label = "SKIP" if result.skipped else ("PASS" if result.passed else "FAIL")
            logger.info(f"  [{label}] {result.vector_name}")
            if result.comparison:
                for div in result.comparison.divergences:
                    logger.debug(f"    {div.field}: {div.expected!r} != {div.actual!r}")
            if not result.passed and self.config.stop_on_first_failure:
                break

        suite.execution_time_ms = _elapsed_ms(started)
        return suite

    async def run_all(self, vector_paths: List[Path]) -> ConformanceReport:
        started = time.perf_counter()
        suites: List[SuiteResult] = []
        for path in vector_paths:
            suites.append(await self.run_suite(Path(path)))
            if suites[-1].failed_tests and self.config.stop_on_first_failure:
                break

        return self.reporter.generate_report(
            suite_results=suites,
            clients=list(self.clients),
            reference_client=self.comparator.reference_client,
            execution_time_ms=_elapsed_ms(started),
        )


def find_vector_files(location: Path) -> List[Path]:
    if location.is_file():
        return [location]
    return sorted(p for p in location.rglob("*") if p.suffix in (".yaml", ".yml"))


@click.command()
@click.option("--vectors", type=click.Path(path_type=Path), default=None,
              help="Vectors directory or a single YAML suite")
@click.option("--clarity-endpoint", default=None, help="Clarity simnet bridge URL")
@click.option("--spec-only", is_flag=True, help="Replay against the Python engine only")
@click.option("--result-dir", default=None, help="Directory to write reports into")
@click.option("--verbose", is_flag=True, help="Log every divergence")
@click.option("--stop-on-failure", is_flag=True, help="Stop at the first failing vector")
def main(
    vectors: Optional[Path],
    clarity_endpoint: Optional[str],
    spec_only: bool,
    result_dir: Optional[str],
    verbose: bool,
    stop_on_failure: bool,
) -> None:
    """Replay escrow vectors and compare implementations."""
    config = HarnessConfig.from_env()

    if clarity_endpoint:
        config.clients[CLARITY_CLIENT].endpoint = clarity_endpoint.rstrip("/")
        config.clients[CLARITY_CLIENT].enabled = True
    if spec_only:
        for name, client in config.clients.items():
            client.enabled = name == SPEC_CLIENT
    if result_dir:
        config.result_dir = result_dir
    config.verbose = config.verbose or verbose
    config.stop_on_first_failure = config.stop_on_first_failure or stop_on_failure
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    location = vectors or Path(config.vector_dir)
    vector_files = find_vector_files(location)
    if not vector_files:
        logger.error(f"No vector files found in {location}")
        sys.exit(1)
    logger.info(f"Found {len(vector_files)} vector files")

    async def run() -> bool:
        harness = ConformanceHarness(config)
        try:
            await harness.setup()
            report = await harness.run_all(vector_files)
            harness.reporter.write_json_report(report)
            harness.reporter.write_summary(report)
            harness.reporter.print_summary(report)
            return report.passed
        finally:
            await harness.teardown()

    sys.exit(0 if asyncio.run(run()) else 1)


if __name__ == "__main__":
    main()
