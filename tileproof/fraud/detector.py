"""
Module 06 - Fast Fraud Detector

A cheap, incomplete pre-filter run before full verification. Works on the
JSON-mode form of any proof record, short-circuits on the first failure and
never raises: an internal fault is reported as a fraud reason.

Quick checks (in order):
1. structure    - a non-empty mapping
2. type         - proof_type in the whitelist
3. commitments  - every embedded commitment is hash-shaped
4. dimensions   - every embedded width/height in range, ratio bounded
5. timestamp    - created_at parseable, not in the future, not stale
6. specific     - per-proof-type invariant

Deep checks add cross-reference, internal-consistency, impossible
transformation and metrics sanity rules.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable

from pydantic import BaseModel

from tileproof.crypto.hashing import is_hash_shaped
from tileproof.schemas.canonical import parse_datetime, utc_now
from tileproof.schemas.fraud import FraudBatchReport, FraudCheckResult
from tileproof.schemas.transformation import DIMENSION_PRESERVING_TAGS, SUPPORTED_TAGS

logger = logging.getLogger(__name__)

ALLOWED_PROOF_TYPES: frozenset[str] = frozenset({
    "transformation",
    "selective_reveal",
    "regional_redaction",
    "video_commitment",
    "video_transformation",
    "video_segment_reveal",
    "video_redaction",
})

# Fields that may hold a commitment, either as a hash string or as an
# object with a `root`
_COMMITMENT_FIELDS = (
    "original_commitment",
    "transformed_commitment",
    "revealed_commitment",
    "redacted_commitment",
    "binding_commitment",
    "video_root",
    "original_video_root",
    "transformed_video_root",
)

_DIMENSION_FIELDS = (
    "original_commitment",
    "transformed_commitment",
    "revealed_commitment",
    "redacted_commitment",
)


class _Fraud(Exception):
    """Internal short-circuit signal carrying the fraud reason."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def _root_of(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("root")
    return value


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class FastFraudDetector:
    """
    Sub-10ms structural and semantic pre-filter.

    Args:
        max_proof_age: Oldest acceptable created_at
        max_future_skew: Largest acceptable clock skew into the future
        max_dimension_ratio: Largest width/height (or height/width) ratio
        min_dimension, max_dimension: Accepted width/height range
        clock: Returns the current aware UTC time
    """

    def __init__(
        self,
        max_proof_age: timedelta = timedelta(hours=24),
        max_future_skew: timedelta = timedelta(seconds=60),
        max_dimension_ratio: float = 100.0,
        min_dimension: int = 1,
        max_dimension: int = 100_000,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.max_proof_age = max_proof_age
        self.max_future_skew = max_future_skew
        self.max_dimension_ratio = max_dimension_ratio
        self.min_dimension = min_dimension
        self.max_dimension = max_dimension
        self.clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def quick_check(self, proof: Any) -> FraudCheckResult:
        """Run the quick checks. Never raises."""
        start = time.perf_counter()
        performed: list[str] = []
        try:
            self._run_quick(proof, performed)
        except _Fraud as fraud:
            return self._result(fraud.reason, start, performed)
        except Exception as e:
            logger.exception("Fraud quick check failed")
            return self._result(f"Check error: {e}", start, performed)
        return self._result(None, start, performed)

    def deep_check(self, proof: Any) -> FraudCheckResult:
        """Quick checks first, then the deep rules. Never raises."""
        start = time.perf_counter()
        performed: list[str] = []
        try:
            data = self._run_quick(proof, performed)
            self._run_deep(data, performed)
        except _Fraud as fraud:
            return self._result(fraud.reason, start, performed)
        except Exception as e:
            logger.exception("Fraud deep check failed")
            return self._result(f"Deep check error: {e}", start, performed)
        return self._result(None, start, performed)

    def batch_check(self, proofs: Iterable[Any]) -> FraudBatchReport:
        """quick_check every proof and aggregate the outcome."""
        start = time.perf_counter()
        results = [self.quick_check(proof) for proof in proofs]
        fraud_count = sum(1 for result in results if result.fraud_detected)
        return FraudBatchReport(
            total=len(results),
            fraud_count=fraud_count,
            clean_count=len(results) - fraud_count,
            results=results,
            elapsed_ms=round((time.perf_counter() - start) * 1000, 3),
        )

    # ------------------------------------------------------------------
    # Quick checks
    # ------------------------------------------------------------------

    def _run_quick(self, proof: Any, performed: list[str]) -> dict[str, Any]:
        if isinstance(proof, BaseModel):
            proof = proof.model_dump(mode="json")
        if not isinstance(proof, dict) or not proof:
            raise _Fraud("Invalid proof structure")
        performed.append("structure")

        proof_type = proof.get("proof_type")
        if proof_type is None:
            raise _Fraud("Missing proof_type")
        if proof_type not in ALLOWED_PROOF_TYPES:
            raise _Fraud(f"Unknown proof type: {proof_type}")
        performed.append("type")

        for name in _COMMITMENT_FIELDS:
            if name not in proof or proof[name] is None:
                continue
            if not is_hash_shaped(_root_of(proof[name])):
                raise _Fraud(f"Invalid {name} format")
        performed.append("commitments")

        for name in _DIMENSION_FIELDS:
            value = proof.get(name)
            if isinstance(value, dict) and ("width" in value or "height" in value):
                self._check_dimension(name, value.get("width"), value.get("height"))
        performed.append("dimensions")

        if "created_at" in proof:
            self._check_timestamp(proof["created_at"])
        performed.append("timestamp")

        self._check_specific(proof)
        performed.append("specific")
        return proof

    def _check_dimension(self, name: str, width: Any, height: Any) -> None:
        if not _is_number(width) or not _is_number(height):
            raise _Fraud(f"Invalid dimension in {name}: {width}x{height}")
        for side in (width, height):
            if side < self.min_dimension or side > self.max_dimension:
                raise _Fraud(f"Invalid dimension in {name}: {width}x{height}")
        if width / height > self.max_dimension_ratio or height / width > self.max_dimension_ratio:
            raise _Fraud(f"Implausible aspect ratio in {name}: {width}x{height}")

    def _check_timestamp(self, value: Any) -> None:
        created = parse_datetime(value)
        if created is None:
            raise _Fraud("Invalid timestamp format")
        now = self.clock()
        if created > now + self.max_future_skew:
            raise _Fraud("Timestamp in future")
        if now - created > self.max_proof_age:
            raise _Fraud("Proof too old")

    @staticmethod
    def _check_specific(proof: dict[str, Any]) -> None:
        proof_type = proof["proof_type"]

        if proof_type == "transformation":
            if proof.get("tag") not in SUPPORTED_TAGS:
                raise _Fraud(f"Unsupported transformation tag: {proof.get('tag')}")

        elif proof_type == "selective_reveal":
            if not isinstance(proof.get("region"), dict):
                raise _Fraud("Missing revealed region")

        elif proof_type == "regional_redaction":
            redactions = proof.get("redactions")
            if not isinstance(redactions, dict):
                raise _Fraud("Invalid redaction count")
            count = redactions.get("affected_tile_count")
            if not _is_number(count) or count < 0:
                raise _Fraud("Invalid redaction count")

        elif proof_type.startswith("video_"):
            count = proof.get("frame_count")
            if count is not None and (not _is_number(count) or count < 0):
                raise _Fraud("Invalid frame count")

    # ------------------------------------------------------------------
    # Deep checks
    # ------------------------------------------------------------------

    def _run_deep(self, proof: dict[str, Any], performed: list[str]) -> None:
        before, after = self._input_output_roots(proof)
        if before is not None and before == after and not self._is_identity(proof):
            raise _Fraud("Commitments identical for non-identity transform")
        performed.append("cross_reference")

        if proof.get("valid") is False:
            raise _Fraud("Proof marked as invalid")
        performed.append("internal_consistency")

        if proof["proof_type"] == "transformation":
            self._check_possible(proof)
        performed.append("possible_transformation")

        metrics = proof.get("metrics")
        values = dict(metrics) if isinstance(metrics, dict) else {}
        if "proving_time_ms" in proof:
            values["proving_time_ms"] = proof["proving_time_ms"]
        for name, value in values.items():
            if _is_number(value) and value < 0:
                raise _Fraud(f"Negative metric: {name}")
        performed.append("metrics")

    @staticmethod
    def _input_output_roots(proof: dict[str, Any]) -> tuple[Any, Any]:
        proof_type = proof["proof_type"]
        if proof_type == "transformation":
            return (
                _root_of(proof.get("original_commitment")),
                _root_of(proof.get("transformed_commitment")),
            )
        if proof_type == "regional_redaction":
            return (
                _root_of(proof.get("original_commitment")),
                _root_of(proof.get("redacted_commitment")),
            )
        if proof_type == "video_transformation":
            return proof.get("original_video_root"), proof.get("transformed_video_root")
        return None, None

    @staticmethod
    def _is_identity(proof: dict[str, Any]) -> bool:
        """Whether the claimed operation may legitimately leave pixels unchanged."""
        if proof["proof_type"] == "video_transformation":
            spec = proof.get("transformation") or {}
            return str(spec.get("type", "")).lower() == "identity"
        if proof["proof_type"] != "transformation":
            return False

        tag = proof.get("tag")
        if tag == "generic":
            return str(proof.get("transformation_type", "")).lower() == "identity"
        if tag in ("brightness", "contrast"):
            return proof.get("factor") == 1.0
        if tag == "blur":
            return proof.get("sigma") == 0
        if tag == "resize":
            return proof.get("scale_x") == 1.0 and proof.get("scale_y") == 1.0
        if tag == "crop":
            original = proof.get("original_commitment") or {}
            region = proof.get("crop_region") or {}
            return (
                region.get("x") == 0 and region.get("y") == 0
                and region.get("width") == original.get("width")
                and region.get("height") == original.get("height")
            )
        return False

    @staticmethod
    def _check_possible(proof: dict[str, Any]) -> None:
        original = proof.get("original_commitment")
        transformed = proof.get("transformed_commitment")
        if not isinstance(original, dict) or not isinstance(transformed, dict):
            return
        tag = proof.get("tag")
        if tag == "crop":
            if (transformed["width"] > original["width"]
                    or transformed["height"] > original["height"]):
                raise _Fraud("Crop larger than original")
        elif tag in DIMENSION_PRESERVING_TAGS:
            if (transformed["width"] != original["width"]
                    or transformed["height"] != original["height"]):
                raise _Fraud(f"{tag} changed dimensions")

    # ------------------------------------------------------------------

    @staticmethod
    def _result(reason: str | None, start: float, performed: list[str]) -> FraudCheckResult:
        if reason is not None:
            logger.warning("Fraud detected: %s", reason)
        return FraudCheckResult(
            fraud_detected=reason is not None,
            reason=reason,
            checks_performed=list(performed),
            elapsed_ms=round((time.perf_counter() - start) * 1000, 4),
        )
