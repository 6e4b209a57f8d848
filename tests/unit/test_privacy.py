"""
Module 05 - Privacy Proof Tests
Tests for tileproof/privacy/selective_reveal.py and tileproof/privacy/redaction.py

Covers:
- selective reveal: tile range, real Merkle paths, revealed image binding
- reveal rejects regions outside the original and forged paths
- redaction of (64,64,64,64) on 256x256/32 -> 4 affected tiles, "0.9375"
- blur and fill modes leave unaffected tiles byte-identical
- redaction verification and tamper detection
"""
import pytest

from fixtures.images import make_gradient_png
from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.privacy.redaction import RegionalRedactionService, spread_sample
from tileproof.privacy.selective_reveal import SelectiveRevealService
from tileproof.schemas.commitment import Region
from tileproof.schemas.errors import DimensionError
from tileproof.schemas.privacy import RedactionRegion


@pytest.fixture
def reveal(engine):
    return SelectiveRevealService(engine)


@pytest.fixture
def redaction(engine):
    return RegionalRedactionService(engine)


class TestSelectiveReveal:
    """Selective reveal proofs."""

    def test_generate_and_verify(self, reveal, image_256):
        region = Region(x=64, y=64, width=128, height=128)
        proof = reveal.generate_proof(image_256, region)
        revealed = reveal.extract_revealed_image(image_256, region)

        assert proof.revealed_tile_count == 16
        assert proof.total_original_tiles == 64
        assert proof.reveal_ratio == "0.2500"
        assert len(proof.tile_proofs) == 4
        assert (proof.revealed_commitment.width, proof.revealed_commitment.height) == (128, 128)

        result = reveal.verify_proof(proof, revealed)
        assert result.valid, result.errors

    def test_region_as_dict(self, reveal, image_256):
        proof = reveal.generate_proof(image_256, {"left": 0, "top": 0, "width": 32, "height": 32})
        assert proof.revealed_tile_count == 1
        assert reveal.verify_proof(proof).valid

    def test_signature_carried_through(self, reveal, image_256):
        proof = reveal.generate_proof(image_256, Region(x=0, y=0, width=64, height=64), original_signature="sig-123")
        assert proof.original_signature == "sig-123"

    def test_region_outside_original_rejected(self, reveal, image_256):
        with pytest.raises(DimensionError):
            reveal.generate_proof(image_256, Region(x=200, y=200, width=100, height=100))

    def test_forged_path_rejected(self, reveal, image_256, assert_check_failed):
        proof = reveal.generate_proof(image_256, Region(x=0, y=0, width=128, height=64))
        tile = proof.tile_proofs[1]
        step = tile.path[0].model_copy(update={"sibling": "22" * 32})
        forged_tile = tile.model_copy(update={"path": [step] + tile.path[1:]})
        forged = proof.model_copy(update={"tile_proofs": [proof.tile_proofs[0], forged_tile] + proof.tile_proofs[2:]})

        assert_check_failed(reveal.verify_proof(forged), "merkle_proofs")

    def test_tile_outside_region_rejected(self, reveal, engine, image_256, assert_check_failed):
        proof = reveal.generate_proof(image_256, Region(x=0, y=0, width=64, height=64))
        commitment = engine.compute_commitment(image_256)
        outside = engine.inclusion_proof(commitment, 63)
        forged = proof.model_copy(update={"tile_proofs": proof.tile_proofs + [outside]})

        assert_check_failed(reveal.verify_proof(forged), "tiles_in_region")

    def test_proof_tile_size_used_for_recompute(self, reveal, image_256):
        small_tiles = SelectiveRevealService(TileCommitmentEngine(tile_size=16))
        region = Region(x=16, y=16, width=80, height=48)
        proof = small_tiles.generate_proof(image_256, region)
        revealed = small_tiles.extract_revealed_image(image_256, region)
        assert proof.revealed_commitment.tile_size == 16

        result = reveal.verify_proof(proof, revealed)
        assert result.valid, result.errors

    def test_wrong_revealed_image(self, reveal, image_256, assert_check_failed):
        proof = reveal.generate_proof(image_256, Region(x=0, y=0, width=64, height=64))
        other = reveal.extract_revealed_image(image_256, Region(x=64, y=0, width=64, height=64))

        assert_check_failed(reveal.verify_proof(proof, other), "revealed_image")

    def test_tampered_region_breaks_binding(self, reveal, image_256, assert_check_failed):
        proof = reveal.generate_proof(image_256, Region(x=0, y=0, width=64, height=64))
        forged = proof.model_copy(update={"region": Region(x=0, y=0, width=64, height=65)})

        assert_check_failed(reveal.verify_proof(forged), "binding_commitment")

    def test_malformed_dict(self, reveal, assert_check_failed):
        result = reveal.verify_proof({"proof_type": "selective_reveal"})
        assert not result.valid
        assert_check_failed(result, "structure")


class TestRegionalRedaction:
    """Redaction with spot-checked unaffected tiles."""

    def test_single_region_preserved_ratio(self, redaction, image_256):
        redacted, proof = redaction.redact_with_proof(image_256, [{"x": 64, "y": 64, "width": 64, "height": 64}])

        assert proof.redactions.affected_tile_count == 4
        assert proof.redactions.unaffected_tile_count == 60
        assert proof.redactions.preserved_ratio == "0.9375"
        assert proof.affected_tile_indices == [18, 19, 26, 27]
        assert proof.all_unaffected_match
        assert proof.valid
        assert len(proof.spot_checks) == 10
        assert proof.original_commitment.root != proof.redacted_commitment.root

        result = redaction.verify_redaction_proof(proof, redacted)
        assert result.valid, result.errors

    @pytest.mark.parametrize("mode", ["blur", "fill"])
    def test_unaffected_tiles_identical(self, redaction, engine, image_256, mode):
        redacted, _ = redaction.redact_with_proof(
            image_256, [RedactionRegion(x=40, y=40, width=30, height=30, mode=mode)],
        )
        original = engine.compute_commitment(image_256)
        after = engine.compute_commitment(redacted)
        changed = {i for i in range(64) if original.leaf_hash(i) != after.leaf_hash(i)}

        assert changed and changed <= {9, 10, 17, 18}

    def test_region_clipped_to_image(self, redaction, image_256):
        _, proof = redaction.redact_with_proof(image_256, [{"x": 224, "y": 224, "width": 100, "height": 100}])
        assert proof.regions[0].width == 32
        assert proof.redactions.affected_tile_count == 1

    def test_region_outside_image_rejected(self, redaction, image_256):
        with pytest.raises(DimensionError):
            redaction.redact_with_proof(image_256, [{"x": 300, "y": 0, "width": 10, "height": 10}])

    def test_no_regions_rejected(self, redaction, image_256):
        with pytest.raises(DimensionError):
            redaction.redact_with_proof(image_256, [])

    def test_custom_fill_colour(self, redaction, image_256):
        redacted, proof = redaction.redact_with_proof(
            image_256, [{"x": 0, "y": 0, "width": 32, "height": 32, "mode": "fill"}],
            options={"fill_color": "#ff00ff", "spot_check_count": 3},
        )
        assert len(proof.spot_checks) == 3
        assert redaction.verify_redaction_proof(proof, redacted).valid

    def test_tampered_counts_rejected(self, redaction, image_256, assert_check_failed):
        _, proof = redaction.redact_with_proof(image_256, [{"x": 64, "y": 64, "width": 64, "height": 64}])
        summary = proof.redactions.model_copy(update={"preserved_ratio": "1.0000"})
        forged = proof.model_copy(update={"redactions": summary})

        assert_check_failed(redaction.verify_redaction_proof(forged), "tile_accounting")

    def test_failed_spot_check_rejected(self, redaction, image_256, assert_check_failed):
        _, proof = redaction.redact_with_proof(image_256, [{"x": 64, "y": 64, "width": 64, "height": 64}])
        bad = proof.spot_checks[0].model_copy(update={"match": False})
        forged = proof.model_copy(update={"spot_checks": [bad] + proof.spot_checks[1:]})

        assert_check_failed(redaction.verify_redaction_proof(forged), "spot_checks")

    def test_proof_tile_size_used_for_recompute(self, redaction, image_256):
        small_tiles = RegionalRedactionService(TileCommitmentEngine(tile_size=16))
        redacted, proof = small_tiles.redact_with_proof(image_256, [{"x": 64, "y": 64, "width": 64, "height": 64}])
        assert proof.redacted_commitment.tile_size == 16
        assert proof.redactions.affected_tile_count == 16

        result = redaction.verify_redaction_proof(proof, redacted)
        assert result.valid, result.errors

    def test_wrong_redacted_image(self, redaction, image_256, assert_check_failed):
        _, proof = redaction.redact_with_proof(image_256, [{"x": 64, "y": 64, "width": 64, "height": 64}])
        result = redaction.verify_redaction_proof(proof, make_gradient_png(256, 256, seed=3))

        assert_check_failed(result, "redacted_image")


class TestSpreadSample:
    def test_even_spread(self):
        assert spread_sample(list(range(10)), 5) == [0, 2, 4, 6, 8]

    def test_fewer_items_than_count(self):
        assert spread_sample([3, 4], 10) == [3, 4]

    def test_zero_count(self):
        assert spread_sample([1, 2, 3], 0) == []
