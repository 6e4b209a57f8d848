"""
Module 06 - Fast Fraud Detector Tests
Tests for tileproof/fraud/detector.py

Covers:
- genuine proofs pass quick and deep checks
- each quick rule rejects its forgery
- deep rules: identical roots, invalid flag, impossible transforms, metrics
- never raises; stays under 10ms per proof
"""
import copy
import time
from datetime import datetime, timedelta, timezone

import pytest

from fixtures.images import make_gradient_png
from tileproof.fraud.detector import FastFraudDetector
from tileproof.imaging.operations import apply_transformation
from tileproof.proofs.generator import TransformationProofGenerator
from tileproof.schemas.transformation import TransformationSpec

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def detector():
    return FastFraudDetector(clock=lambda: NOW)


@pytest.fixture(scope="module")
def genuine():
    """JSON-mode grayscale proof stamped at NOW."""
    original = make_gradient_png(128, 128)
    spec = TransformationSpec(type="grayscale")
    proof = TransformationProofGenerator().generate_proof(original, apply_transformation(original, spec), spec)
    return proof.model_copy(update={"created_at": NOW - timedelta(minutes=5)}).model_dump(mode="json")


def _mutate(proof, **updates):
    forged = copy.deepcopy(proof)
    for path, value in updates.items():
        target = forged
        keys = path.split("__")
        for key in keys[:-1]:
            target = target[key]
        if value is ...:
            del target[keys[-1]]
        else:
            target[keys[-1]] = value
    return forged


class TestGenuineProofs:
    def test_quick_check_clean(self, detector, genuine):
        result = detector.quick_check(genuine)

        assert result.clean
        assert result.checks_performed == [
            "structure", "type", "commitments", "dimensions", "timestamp", "specific",
        ]

    def test_deep_check_clean(self, detector, genuine):
        result = detector.deep_check(genuine)

        assert not result.fraud_detected
        assert result.checks_performed[-4:] == [
            "cross_reference", "internal_consistency", "possible_transformation", "metrics",
        ]

    def test_accepts_model_instances(self, services, image_256):
        proof = services.reveal.generate_proof(image_256, {"x": 0, "y": 0, "width": 32, "height": 32})
        assert services.fraud.quick_check(proof).clean


class TestQuickRules:
    """Each quick rule rejects its forgery with a specific reason."""

    @pytest.mark.parametrize("garbage", [None, {}, [], "proof", 7])
    def test_structure(self, detector, garbage):
        result = detector.quick_check(garbage)
        assert result.fraud_detected
        assert result.reason == "Invalid proof structure"

    def test_missing_type(self, detector, genuine):
        assert detector.quick_check(_mutate(genuine, proof_type=...)).reason == "Missing proof_type"

    def test_unknown_type(self, detector, genuine):
        result = detector.quick_check(_mutate(genuine, proof_type="zk_snark"))
        assert result.reason == "Unknown proof type: zk_snark"

    def test_bad_commitment(self, detector, genuine):
        result = detector.quick_check(_mutate(genuine, original_commitment__root="not-a-hash"))
        assert result.reason == "Invalid original_commitment format"

    def test_decimal_commitment_accepted(self, detector, genuine):
        forged = _mutate(genuine, binding_commitment="12345678901234567890")
        assert detector.quick_check(forged).clean

    @pytest.mark.parametrize(
        "width,height",
        [
            (0, 10), (-5, 10), (200_000, 10), ("wide", 10),
            (float("nan"), 10), (10, float("nan")), (float("inf"), 10),
        ],
    )
    def test_bad_dimensions(self, detector, genuine, width, height):
        forged = _mutate(genuine, transformed_commitment__width=width, transformed_commitment__height=height)
        assert detector.quick_check(forged).reason.startswith("Invalid dimension")

    def test_extreme_aspect_ratio(self, detector, genuine):
        forged = _mutate(genuine, transformed_commitment__width=5000, transformed_commitment__height=10)
        assert detector.quick_check(forged).reason.startswith("Implausible aspect ratio")

    def test_future_timestamp(self, detector, genuine):
        forged = _mutate(genuine, created_at=(NOW + timedelta(minutes=5)).isoformat())
        assert detector.quick_check(forged).reason == "Timestamp in future"

    def test_small_skew_tolerated(self, detector, genuine):
        forged = _mutate(genuine, created_at=(NOW + timedelta(seconds=30)).isoformat())
        assert detector.quick_check(forged).clean

    def test_stale_timestamp(self, detector, genuine):
        forged = _mutate(genuine, created_at=(NOW - timedelta(days=2)).isoformat())
        assert detector.quick_check(forged).reason == "Proof too old"

    def test_unparseable_timestamp(self, detector, genuine):
        assert detector.quick_check(_mutate(genuine, created_at="yesterday")).reason == "Invalid timestamp format"

    def test_unsupported_tag(self, detector, genuine):
        result = detector.quick_check(_mutate(genuine, tag="warp"))
        assert result.reason == "Unsupported transformation tag: warp"

    def test_negative_redaction_count(self, detector):
        proof = {
            "proof_type": "regional_redaction",
            "redactions": {"affected_tile_count": -1},
        }
        assert detector.quick_check(proof).reason == "Invalid redaction count"

    def test_short_circuits(self, detector, genuine):
        result = detector.quick_check(_mutate(genuine, proof_type="zk_snark"))
        assert result.checks_performed == ["structure"]


class TestDeepRules:
    def test_identical_roots_for_non_identity(self, detector, genuine):
        forged = _mutate(genuine, transformed_commitment__root=genuine["original_commitment"]["root"])
        assert detector.deep_check(forged).reason == "Commitments identical for non-identity transform"

    def test_identity_transform_may_keep_root(self, detector, genuine):
        forged = _mutate(
            genuine,
            tag="generic",
            transformation_type="identity",
            transformed_commitment__root=genuine["original_commitment"]["root"],
        )
        assert detector.deep_check(forged).clean

    def test_marked_invalid(self, detector, genuine):
        assert detector.deep_check(_mutate(genuine, valid=False)).reason == "Proof marked as invalid"

    def test_dimension_changing_grayscale(self, detector, genuine):
        forged = _mutate(genuine, transformed_commitment__width=64)
        assert detector.deep_check(forged).reason == "grayscale changed dimensions"

    def test_crop_larger_than_original(self, detector, genuine):
        forged = _mutate(genuine, tag="crop", transformed_commitment__width=4096)
        assert detector.deep_check(forged).reason == "Crop larger than original"

    def test_negative_metric(self, detector, genuine):
        forged = _mutate(genuine, metrics__proving_time_ms=-1)
        assert detector.deep_check(forged).reason == "Negative metric: proving_time_ms"

    def test_quick_check_ignores_deep_rules(self, detector, genuine):
        assert detector.quick_check(_mutate(genuine, valid=False)).clean


class TestBatchAndLatency:
    def test_batch_check(self, detector, genuine):
        report = detector.batch_check([genuine, {}, _mutate(genuine, tag="warp"), genuine])

        assert report.total == 4
        assert report.fraud_count == 2
        assert report.clean_count == 2
        assert report.fraud_indices == [1, 2]

    @pytest.mark.parametrize("case", ["genuine", "hostile", "unsupported_tag"])
    def test_quick_check_under_10ms(self, detector, genuine, case):
        proof = {
            "genuine": genuine,
            "hostile": {
                "proof_type": "transformation",
                "original_commitment": {"root": "a" * 64, "width": 1, "height": 0},
            },
            # Fails only the last rule, so every earlier rule runs.
            "unsupported_tag": _mutate(genuine, tag="warp"),
        }[case]
        expect_clean = case == "genuine"

        assert detector.quick_check(proof).clean is expect_clean
        start = time.perf_counter()
        for _ in range(100):
            detector.quick_check(proof)
        per_check_ms = (time.perf_counter() - start) * 1000 / 100
        assert per_check_ms < 10

    def test_never_raises_on_hostile_input(self, detector):
        hostile = {"proof_type": "transformation", "original_commitment": {"root": "a" * 64, "width": 1, "height": 0}}
        result = detector.deep_check(hostile)
        assert result.fraud_detected
