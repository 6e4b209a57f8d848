"""
Module 08 - Proof Chain Manager

Composes a sequence of transformation proofs over one original image.
The original commitment is fixed; steps are append-only; the running
commitment is the last step's output root (or the original root).

Linkage: each proof must start from the running commitment. Enforced by
default; with enforcement off a gap is logged and the step appended.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from tileproof.commitment.engine import TileCommitment
from tileproof.schemas.canonical import utc_now
from tileproof.schemas.chain import ChainStep, ProofChainRecord
from tileproof.schemas.commitment import OriginalCommitmentRef
from tileproof.schemas.errors import ChainLinkageError
from tileproof.schemas.transformation import GenericProof, TransformationProof, tag_fields

logger = logging.getLogger(__name__)


class ProofChainManager:
    """Append-only chain of transformation proofs."""

    def __init__(
        self,
        original_commitment: TileCommitment | OriginalCommitmentRef,
        enforce_linkage: bool = True,
        chain_id: str | None = None,
        created_at: datetime | None = None,
    ) -> None:
        if isinstance(original_commitment, TileCommitment):
            original_commitment = original_commitment.original_ref()
        self._original = original_commitment
        self.enforce_linkage = enforce_linkage
        self.chain_id = chain_id or str(uuid.uuid4())
        self.created_at = created_at or utc_now()
        self._steps: list[ChainStep] = []

    @property
    def original_commitment(self) -> OriginalCommitmentRef:
        return self._original

    @property
    def steps(self) -> tuple[ChainStep, ...]:
        return tuple(self._steps)

    @property
    def running_commitment(self) -> str:
        return self._steps[-1].output_commitment if self._steps else self._original.root

    @property
    def final_commitment(self) -> str:
        return self.running_commitment

    @property
    def final_dimensions(self) -> tuple[int, int]:
        if self._steps:
            return self._steps[-1].output_width, self._steps[-1].output_height
        return self._original.width, self._original.height

    def add_proof(self, proof: TransformationProof) -> ChainStep:
        """
        Append a proof as the next step.

        Raises:
            ChainLinkageError: If enforcement is on and the proof's original
                root is not the running commitment
        """
        expected = self.running_commitment
        actual = proof.original_commitment.root
        if actual != expected:
            if self.enforce_linkage:
                raise ChainLinkageError(expected, actual)
            logger.warning(
                "Chain %s: step %d does not link (expected %s, got %s)",
                self.chain_id[:8], len(self._steps), expected[:16], actual[:16],
            )

        params = tag_fields(proof)
        params.pop("tag", None)
        if isinstance(proof, GenericProof):
            transformation_type = proof.transformation_type
            params = dict(proof.params)
        else:
            transformation_type = proof.tag

        step = ChainStep(
            index=len(self._steps),
            tag=proof.tag,
            transformation_type=transformation_type,
            params=params,
            input_commitment=actual,
            output_commitment=proof.transformed_commitment.root,
            output_width=proof.transformed_commitment.width,
            output_height=proof.transformed_commitment.height,
            binding_commitment=proof.binding_commitment,
            valid=proof.valid,
            proof=proof,
        )
        self._steps.append(step)
        logger.debug("Chain %s: appended %s step %d", self.chain_id[:8], proof.tag, step.index)
        return step

    def get_chain(self) -> ProofChainRecord:
        """Immutable snapshot of the chain."""
        return ProofChainRecord(
            chain_id=self.chain_id,
            created_at=self.created_at,
            original_commitment=self._original,
            steps=list(self._steps),
            running_commitment=self.running_commitment,
        )
