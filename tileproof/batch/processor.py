"""
Module 07 - Batch Processor

Bounded-concurrency fan-out for commit, transform, verify, selective reveal
and redact operations.

Given N items and a limit C, items run in ceil(N / C) chunks of at most C on
a thread pool. Results are stored by original position, not completion
order. One item's exception becomes a failed BatchItemResult and never
aborts its siblings or later chunks.
"""

from __future__ import annotations

import concurrent.futures
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Sequence, TypeVar

from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.fraud.detector import FastFraudDetector
from tileproof.privacy.redaction import RegionalRedactionService
from tileproof.privacy.selective_reveal import SelectiveRevealService
from tileproof.proofs.checks import make_check
from tileproof.proofs.generator import TransformationProofGenerator
from tileproof.proofs.verifier import TransformationProofVerifier
from tileproof.schemas.batch import BatchItemResult, BatchOperation, BatchReport
from tileproof.schemas.commitment import Region
from tileproof.schemas.errors import BatchItemError, ErrorCodes
from tileproof.schemas.privacy import RedactionOptions, RedactionRegion
from tileproof.schemas.transformation import TransformationSpec
from tileproof.schemas.verification import VerificationResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 4

T = TypeVar("T")


# =============================================================================
# Batch item records
# =============================================================================

@dataclass(frozen=True)
class TransformItem:
    original_bytes: bytes
    transformed_bytes: bytes
    spec: TransformationSpec | dict[str, Any]


@dataclass(frozen=True)
class VerifyItem:
    """A proof plus the image bytes its sound check needs, if any."""
    proof: Any
    image_bytes: bytes | None = None


@dataclass(frozen=True)
class RevealItem:
    original_bytes: bytes
    region: Region | dict[str, Any]
    original_signature: str | None = None


@dataclass(frozen=True)
class RedactItem:
    original_bytes: bytes
    regions: Sequence[RedactionRegion | dict[str, Any]]
    options: RedactionOptions | dict[str, Any] | None = None


def _coerce(item_type: type[T], item: Any) -> T:
    """Accept either the item record or a plain dict of its fields."""
    if isinstance(item, item_type):
        return item
    if isinstance(item, dict):
        return item_type(**item)
    raise TypeError(f"Expected {item_type.__name__} or dict, got {type(item).__name__}")


# =============================================================================
# Processor
# =============================================================================

class BatchProcessor:
    """
    Runs proof operations over many items with bounded concurrency.

    Args:
        engine, generator, verifier, reveal_service, redaction_service,
        fraud_detector: Services each operation delegates to
        video_verifier: Optional verifier for video proofs in batch_verify
        max_concurrent: Chunk size and worker count
    """

    def __init__(
        self,
        engine: TileCommitmentEngine,
        generator: TransformationProofGenerator,
        verifier: TransformationProofVerifier,
        reveal_service: SelectiveRevealService,
        redaction_service: RegionalRedactionService,
        fraud_detector: FastFraudDetector,
        video_verifier: Any = None,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        self.engine = engine
        self.generator = generator
        self.verifier = verifier
        self.reveal_service = reveal_service
        self.redaction_service = redaction_service
        self.fraud_detector = fraud_detector
        self.video_verifier = video_verifier
        self.max_concurrent = max_concurrent

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def batch_commit(self, images: Sequence[bytes]) -> BatchReport:
        """Commit to each image; results are CommitmentSummary records."""
        return self._run("commit", images, lambda data: self.engine.compute_commitment(data).to_summary())

    def batch_transform(self, items: Sequence[TransformItem | dict[str, Any]]) -> BatchReport:
        """Generate a transformation proof per item."""
        def work(raw: Any) -> Any:
            item = _coerce(TransformItem, raw)
            return self.generator.generate_proof(item.original_bytes, item.transformed_bytes, item.spec)

        return self._run("transform", items, work)

    def batch_verify(self, items: Sequence[Any]) -> BatchReport:
        """
        Fraud pre-filter, then full verification, per proof.

        Items are proofs (models or dicts) or VerifyItem records. An item
        succeeds only if its verification is valid.
        """
        return self._run("verify", items, self._verify_one, is_success=lambda r: r.valid)

    def batch_selective_reveal(self, items: Sequence[RevealItem | dict[str, Any]]) -> BatchReport:
        def work(raw: Any) -> Any:
            item = _coerce(RevealItem, raw)
            return self.reveal_service.generate_proof(
                item.original_bytes, item.region, item.original_signature,
            )

        return self._run("selective_reveal", items, work)

    def batch_redact(self, items: Sequence[RedactItem | dict[str, Any]]) -> BatchReport:
        """Results are (redacted_bytes, RedactionProof) tuples."""
        def work(raw: Any) -> Any:
            item = _coerce(RedactItem, raw)
            return self.redaction_service.redact_with_proof(
                item.original_bytes, item.regions, item.options,
            )

        return self._run("redact", items, work)

    # ------------------------------------------------------------------
    # Verification dispatch
    # ------------------------------------------------------------------

    def _verify_one(self, raw: Any) -> VerificationResult:
        item = raw if isinstance(raw, VerifyItem) else VerifyItem(proof=raw)
        proof = item.proof

        fraud = self.fraud_detector.quick_check(proof)
        data = proof if isinstance(proof, dict) else {"proof_type": getattr(proof, "proof_type", None)}
        proof_type = data.get("proof_type")
        if fraud.fraud_detected:
            return VerificationResult.from_checks(
                [make_check(
                    "fraud_prefilter", False, f"Rejected by fraud pre-filter: {fraud.reason}",
                    {"code": ErrorCodes.FRAUD_DETECTED, "checks_performed": fraud.checks_performed},
                )],
                proof_kind=proof_type,
                verification_time_ms=fraud.elapsed_ms,
            )

        if proof_type == "transformation":
            result = self.verifier.verify(proof, item.image_bytes)
        elif proof_type == "selective_reveal":
            result = self.reveal_service.verify_proof(proof, item.image_bytes)
        elif proof_type == "regional_redaction":
            result = self.redaction_service.verify_redaction_proof(proof, item.image_bytes)
        elif self.video_verifier is not None and str(proof_type).startswith("video_"):
            result = self.video_verifier.verify(proof)
        else:
            raise TypeError(f"No verifier for proof type {proof_type!r}")

        prefilter = make_check("fraud_prefilter", True, "Passed fraud pre-filter")
        return VerificationResult.from_checks([prefilter]).merge(result)

    # ------------------------------------------------------------------
    # Chunked execution
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: BatchOperation,
        items: Sequence[Any],
        work: Callable[[Any], Any],
        is_success: Callable[[Any], bool] = lambda result: True,
    ) -> BatchReport:
        batch_id = uuid.uuid4().hex
        items = list(items)
        total = len(items)
        results: list[BatchItemResult | None] = [None] * total
        start = time.perf_counter()

        logger.info(
            "Batch %s started: %s x%d (max_concurrent=%d)",
            batch_id[:8], operation, total, self.max_concurrent,
        )

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_concurrent, thread_name_prefix=f"tileproof-{operation}",
        ) as pool:
            for chunk_start in range(0, total, self.max_concurrent):
                chunk = items[chunk_start:chunk_start + self.max_concurrent]
                futures = {
                    pool.submit(work, item): index
                    for index, item in enumerate(chunk, start=chunk_start)
                }
                for future in concurrent.futures.as_completed(futures):
                    index = futures[future]
                    results[index] = self._collect(index, future, is_success)

        elapsed = time.perf_counter() - start
        successful = sum(1 for item in results if item is not None and item.success)
        report = BatchReport(
            batch_id=batch_id,
            operation=operation,
            total=total,
            successful=successful,
            failed=total - successful,
            processing_time_ms=round(elapsed * 1000, 3),
            throughput_per_sec=round(total / elapsed, 3) if elapsed > 0 else 0.0,
            results=[item for item in results if item is not None],
        )
        logger.info(
            "Batch %s finished: %d/%d succeeded in %.1fms",
            batch_id[:8], successful, total, report.processing_time_ms,
        )
        return report

    @staticmethod
    def _collect(
        index: int,
        future: concurrent.futures.Future,
        is_success: Callable[[Any], bool],
    ) -> BatchItemResult:
        try:
            value = future.result()
        except Exception as e:
            failure = BatchItemError(index, e)
            logger.warning("Batch item %d failed: %s", index, failure.message)
            return BatchItemResult(
                index=index, success=False, error=failure.message, error_code=failure.code,
            )

        if is_success(value):
            return BatchItemResult(index=index, success=True, result=value)
        errors = getattr(value, "errors", None) or ["Operation reported failure"]
        return BatchItemResult(
            index=index,
            success=False,
            result=value,
            error="; ".join(errors),
            error_code=ErrorCodes.VERIFICATION_FAILED,
        )
