"""
Module 04 - Transformation Proof Tests
Tests for tileproof/proofs/generator.py and tileproof/proofs/verifier.py

Covers:
- one proof variant per supported tag, verified end to end
- crop invariant: tile range and corner paths against the original root
- dimension-preserving tags reject resized output
- unsupported types degrade to generic proofs
- binding commitment tamper detection
- the sound image_commitment check
- verify() never raises on garbage
"""
import pytest

from fixtures.images import make_gradient_png
from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.imaging.operations import apply_transformation
from tileproof.proofs.generator import (
    TransformationProofGenerator,
    sample_tile_indices,
    transformation_binding_payload,
)
from tileproof.proofs.verifier import TransformationProofVerifier
from tileproof.crypto.hashing import binding_commitment, is_sha256_hex
from tileproof.schemas.errors import DimensionError, UnsupportedTransformationError
from tileproof.schemas.transformation import (
    AdjustmentProof,
    BlurProof,
    CropProof,
    GenericProof,
    GrayscaleProof,
    ResizeProof,
    TransformationSpec,
    parse_transformation_proof,
)


@pytest.fixture
def generator(engine):
    return TransformationProofGenerator(engine)


@pytest.fixture
def verifier(engine):
    return TransformationProofVerifier(engine)


def _prove(generator, original, spec_dict):
    spec = TransformationSpec.model_validate(spec_dict)
    transformed = apply_transformation(original, spec)
    return generator.generate_proof(original, transformed, spec), transformed


class TestProofVariants:
    """Each supported tag produces its variant and verifies."""

    @pytest.mark.parametrize(
        "spec,model",
        [
            ({"type": "crop", "params": {"left": 64, "top": 64, "width": 128, "height": 128}}, CropProof),
            ({"type": "resize", "params": {"width": 128, "height": 128}}, ResizeProof),
            ({"type": "grayscale"}, GrayscaleProof),
            ({"type": "blur", "params": {"sigma": 2}}, BlurProof),
            ({"type": "brightness", "params": {"brightness": 1.2}}, AdjustmentProof),
            ({"type": "contrast", "params": {"factor": 0.8}}, AdjustmentProof),
        ],
    )
    def test_generate_and_verify(self, generator, verifier, image_256, spec, model):
        proof, transformed = _prove(generator, image_256, spec)

        assert isinstance(proof, model)
        assert proof.valid
        assert is_sha256_hex(proof.binding_commitment)
        result = verifier.verify(proof, transformed)
        assert result.valid, result.errors

    def test_metrics_populated(self, generator, image_256):
        proof, _ = _prove(generator, image_256, {"type": "grayscale"})
        assert proof.metrics.original_tiles == 64
        assert proof.metrics.proof_size > 0

    def test_dict_round_trip_verifies(self, generator, verifier, image_256):
        proof, _ = _prove(generator, image_256, {"type": "blur", "params": {"sigma": 1.5}})
        dumped = proof.model_dump(mode="json")

        assert parse_transformation_proof(dumped).model_dump(mode="json") == dumped
        assert verifier.verify(dumped).valid


class TestCropProof:
    """Crop (64,64,128,128) on 256x256/32."""

    def test_tile_range_and_corners(self, generator, verifier, image_256, assert_check_passed):
        proof, _ = _prove(
            generator, image_256,
            {"type": "crop", "params": {"left": 64, "top": 64, "width": 128, "height": 128}},
        )

        assert (proof.tile_range.x_start, proof.tile_range.x_end) == (2, 6)
        assert (proof.tile_range.y_start, proof.tile_range.y_end) == (2, 6)
        assert proof.involved_tile_count == 16
        assert [cp.tile_index for cp in proof.corner_proofs] == [18, 21, 42, 45]
        assert proof.dimension_match
        assert_check_passed(verifier.verify(proof), "transformation_proof")

    def test_crop_outside_original_rejected(self, generator, image_256):
        spec = TransformationSpec(type="crop", params={"left": 200, "top": 0, "width": 100, "height": 10})
        with pytest.raises(DimensionError):
            generator.generate_proof(image_256, make_gradient_png(100, 10), spec)

    def test_crop_dimension_mismatch_invalid(self, generator, verifier, image_256):
        spec = TransformationSpec(type="crop", params={"left": 0, "top": 0, "width": 64, "height": 64})
        proof = generator.generate_proof(image_256, make_gradient_png(32, 32), spec)

        assert not proof.dimension_match
        assert not proof.valid
        assert not verifier.verify(proof).valid

    def test_forged_corner_path_rejected(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(
            generator, image_256,
            {"type": "crop", "params": {"left": 0, "top": 0, "width": 64, "height": 64}},
        )
        corner = proof.corner_proofs[0]
        forged_corner = corner.model_copy(update={"leaf_hash": "11" * 32})
        forged = proof.model_copy(update={"corner_proofs": [forged_corner] + proof.corner_proofs[1:]})

        assert_check_failed(verifier.verify(forged), "transformation_proof")

    def test_transformed_larger_than_original_rejected(
        self, generator, verifier, image_256, assert_check_failed,
    ):
        proof, _ = _prove(
            generator, image_256,
            {"type": "crop", "params": {"left": 64, "top": 64, "width": 128, "height": 128}},
        )
        oversized = proof.transformed_commitment.model_copy(update={"width": 300})
        result = verifier.verify(proof.model_copy(update={"transformed_commitment": oversized}))

        assert not result.valid
        assert_check_failed(result, "dimensions")

    def test_missing_corner_paths_rejected(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(
            generator, image_256,
            {"type": "crop", "params": {"left": 64, "top": 64, "width": 128, "height": 128}},
        )
        stripped = proof.model_copy(update={"corner_proofs": []})
        result = verifier.verify(stripped)

        assert not result.valid
        assert_check_failed(result, "transformation_proof")
        crop_check = next(c for c in result.checks if c.check_id == "transformation_proof")
        assert crop_check.details["corner_proofs_complete"] is False

    def test_partial_corner_paths_rejected(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(
            generator, image_256,
            {"type": "crop", "params": {"left": 64, "top": 64, "width": 128, "height": 128}},
        )
        partial = proof.model_copy(update={"corner_proofs": proof.corner_proofs[:1]})

        assert_check_failed(verifier.verify(partial), "transformation_proof")

    def test_tile_range_must_cover_region(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(
            generator, image_256,
            {"type": "crop", "params": {"left": 64, "top": 64, "width": 128, "height": 128}},
        )
        narrowed = proof.tile_range.model_copy(update={"x_end": 3, "y_end": 3})
        forged = proof.model_copy(update={
            "tile_range": narrowed,
            "involved_tile_count": narrowed.count,
            "corner_proofs": proof.corner_proofs[:1],
        })
        forged = forged.model_copy(update={
            "binding_commitment": binding_commitment(transformation_binding_payload(forged)),
        })
        result = verifier.verify(forged)

        assert result.check_map["binding_commitment"]
        assert_check_failed(result, "transformation_proof")
        crop_check = next(c for c in result.checks if c.check_id == "transformation_proof")
        assert crop_check.details["tile_range_matches_region"] is False


class TestDimensionPreservingRule:
    """grayscale / blur / brightness / contrast must keep dimensions."""

    @pytest.mark.parametrize("tag", ["grayscale", "blur", "brightness", "contrast"])
    def test_resized_output_rejected(self, generator, verifier, image_256, tag, assert_check_failed):
        spec = TransformationSpec(type=tag, params={})
        proof = generator.generate_proof(image_256, make_gradient_png(128, 128), spec)

        assert not proof.valid
        result = verifier.verify(proof)
        assert not result.valid
        assert_check_failed(result, "dimensions")


class TestParameterRules:
    def test_adjustment_out_of_range_invalid(self, generator, verifier, image_256):
        spec = TransformationSpec(type="brightness", params={"brightness": 5.0})
        proof = generator.generate_proof(image_256, image_256, spec)

        assert not proof.factor_in_range
        assert not proof.valid
        assert not verifier.verify(proof).valid

    def test_blur_kernel_size(self, generator, image_256):
        proof, _ = _prove(generator, image_256, {"type": "blur", "params": {"sigma": 2}})
        assert proof.kernel_size == 13

    def test_resize_aspect(self, generator, image_256):
        proof, _ = _prove(generator, image_256, {"type": "resize", "params": {"width": 128, "height": 64}})
        assert (proof.scale_x, proof.scale_y) == (0.5, 0.25)
        assert not proof.aspect_preserved

    def test_grayscale_sample_is_achromatic(self, generator, image_256):
        proof, _ = _prove(generator, image_256, {"type": "grayscale"})
        assert len(proof.sampled_tile_indices) == 10
        assert proof.sample_consistent

    def test_grayscale_sample_detects_colour(self, generator, image_256):
        spec = TransformationSpec(type="grayscale")
        proof = generator.generate_proof(image_256, image_256, spec)
        assert not proof.sample_consistent

    def test_sample_is_deterministic(self):
        assert sample_tile_indices(b"seed", 64, 10) == sample_tile_indices(b"seed", 64, 10)
        assert sample_tile_indices(b"seed", 3, 10) == [0, 1, 2]


class TestGenericFallback:
    def test_unknown_type_degrades(self, generator, verifier, image_256):
        spec = TransformationSpec(type="sepia", params={"strength": 0.4})
        proof = generator.generate_proof(image_256, image_256, spec)

        assert isinstance(proof, GenericProof)
        assert proof.transformation_type == "sepia"
        assert proof.guarantees.witness == "binding_only"
        assert verifier.verify(proof).valid

    def test_apply_unknown_type_raises(self, image_256):
        with pytest.raises(UnsupportedTransformationError):
            apply_transformation(image_256, TransformationSpec(type="sepia"))


class TestTamperDetection:
    def test_tampered_parameter_breaks_binding(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(generator, image_256, {"type": "blur", "params": {"sigma": 2}})
        tampered = proof.model_copy(update={"sigma": 0.5})

        assert_check_failed(verifier.verify(tampered), "binding_commitment")

    def test_tampered_root_breaks_binding(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(generator, image_256, {"type": "grayscale"})
        forged_ref = proof.transformed_commitment.model_copy(update={"root": "ab" * 32})
        tampered = proof.model_copy(update={"transformed_commitment": forged_ref})

        assert_check_failed(verifier.verify(tampered), "binding_commitment")

    def test_malformed_binding_format(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(generator, image_256, {"type": "grayscale"})
        result = verifier.verify(proof.model_copy(update={"binding_commitment": "xyz"}))
        assert_check_failed(result, "binding_commitment_format")

    def test_binding_recomputes(self, generator, image_256):
        proof, _ = _prove(generator, image_256, {"type": "contrast", "params": {"contrast": 1.1}})
        assert binding_commitment(transformation_binding_payload(proof)) == proof.binding_commitment


class TestImageCommitmentCheck:
    def test_wrong_image_rejected(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(generator, image_256, {"type": "grayscale"})
        result = verifier.verify(proof, make_gradient_png(256, 256, seed=99))

        assert_check_failed(result, "image_commitment")

    @pytest.mark.parametrize(
        "spec",
        [
            {"type": "grayscale"},
            {"type": "crop", "params": {"left": 16, "top": 16, "width": 96, "height": 80}},
        ],
    )
    def test_proof_tile_size_used_for_recompute(self, verifier, image_256, spec, assert_check_passed):
        small_tiles = TransformationProofGenerator(TileCommitmentEngine(tile_size=16))
        proof, transformed = _prove(small_tiles, image_256, spec)
        assert proof.transformed_commitment.tile_size == 16
        assert verifier.engine.tile_size == 32

        result = verifier.verify(proof, transformed)
        assert result.valid, result.errors
        assert_check_passed(result, "image_commitment")

    def test_undecodable_image_rejected(self, generator, verifier, image_256, assert_check_failed):
        proof, _ = _prove(generator, image_256, {"type": "grayscale"})
        assert_check_failed(verifier.verify(proof, b"garbage"), "image_commitment")


class TestVerifierRobustness:
    @pytest.mark.parametrize("garbage", [None, 42, "proof", {}, {"tag": "crop"}, {"tag": "nope"}])
    def test_garbage_is_invalid_not_error(self, verifier, garbage, assert_check_failed):
        result = verifier.verify(garbage)

        assert not result.valid
        assert_check_failed(result, "structure")
        assert result.error is not None
