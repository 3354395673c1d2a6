"""
Divergence detection between escrow implementations.

A client result is a plain dict as returned by the bridge endpoints:
`success`, `error_code`, optional `value`, `state_digest` and, for blocks,
a `receipts` list.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

VECTOR_REFERENCE = "vector"


@dataclass
class Divergence:
    """One field on which a client disagrees with its reference."""
    field: str
    expected: Any
    actual: Any
    client: str
    reference_client: str
    vector_name: str
    details: Optional[str] = None


@dataclass
class ComparisonResult:
    success: bool
    divergences: List[Divergence] = field(default_factory=list)
    clients_compared: List[str] = field(default_factory=list)

    @property
    def has_divergences(self) -> bool:
        return bool(self.divergences)

    def merge(self, other: "ComparisonResult") -> None:
        self.divergences.extend(other.divergences)
        self.success = self.success and other.success


def _outcome(divergences: List[Divergence], clients: Iterable[str]) -> ComparisonResult:
    return ComparisonResult(
        success=not divergences,
        divergences=divergences,
        clients_compared=list(clients),
    )


def _receipt_codes(receipts: List[Dict[str, Any]]) -> List[tuple]:
    return [(bool(r.get("success")), int(r.get("error_code", 0))) for r in receipts]


class ResultComparator:
    """Compares call and block results against a reference client."""

    def __init__(self, reference_client: str = "escrow-spec"):
        self.reference_client = reference_client

    def compare_results(
        self,
        results: Dict[str, Dict[str, Any]],
        vector_name: str,
    ) -> ComparisonResult:
        """Compare every client with the reference client's result."""
        if len(results) < 2:
            return _outcome([], results)
        if self.reference_client not in results:
            raise ValueError(f"Reference client '{self.reference_client}' not in results")

        reference = results[self.reference_client]
        divergences: List[Divergence] = []
        for client, result in results.items():
            if client != self.reference_client:
                divergences += self.diff(reference, result, client, vector_name)
        return _outcome(divergences, results)

    def compare_expected(
        self,
        expected: Dict[str, Any],
        actual: Dict[str, Any],
        client: str,
        vector_name: str,
    ) -> ComparisonResult:
        """Compare one client's result with the expectation recorded in the vector."""
        divergences = self.diff(expected, actual, client, vector_name, VECTOR_REFERENCE)
        return _outcome(divergences, [client])

    def diff(
        self,
        reference: Dict[str, Any],
        actual: Dict[str, Any],
        client: str,
        vector_name: str,
        reference_client: Optional[str] = None,
    ) -> List[Divergence]:
        ref_name = reference_client or self.reference_client
        found: List[Divergence] = []

        def mismatch(name: str, want: Any, got: Any, details: Optional[str] = None) -> None:
            found.append(Divergence(name, want, got, client, ref_name, vector_name, details))

        want_ok, got_ok = reference.get("success", True), actual.get("success", True)
        if want_ok != got_ok:
            mismatch("success", want_ok, got_ok)

        want_code, got_code = int(reference.get("error_code", 0)), int(actual.get("error_code", 0))
        if want_code != got_code:
            mismatch("error_code", want_code, got_code, f"expected 0x{want_code:04x}, got 0x{got_code:04x}")

        # Digests and return values are optional on either side.
        want_digest, got_digest = reference.get("state_digest"), actual.get("state_digest")
        if want_digest and got_digest and want_digest != got_digest:
            mismatch("state_digest", want_digest, got_digest, "post-state differs")

        if "value" in reference and "value" in actual and reference["value"] != actual["value"]:
            mismatch("value", reference["value"], actual["value"])

        want_receipts, got_receipts = reference.get("receipts"), actual.get("receipts")
        if want_receipts is not None and got_receipts is not None:
            want, got = _receipt_codes(want_receipts), _receipt_codes(got_receipts)
            if want != got:
                mismatch("receipts", want, got, "block receipts differ")

        return found

    def compare_state_digests(
        self,
        digests: Dict[str, str],
        vector_name: str,
    ) -> ComparisonResult:
        """Check that every client reports the reference client's digest."""
        if len(digests) < 2:
            return _outcome([], digests)
        reference = digests.get(self.reference_client)
        if not reference:
            raise ValueError(f"Reference client '{self.reference_client}' not in digests")

        divergences = [
            Divergence(
                "state_digest", reference, digest, client, self.reference_client,
                vector_name, "pre-state load differs",
            )
            for client, digest in digests.items()
            if client != self.reference_client and digest != reference
        ]
        return _outcome(divergences, digests)
