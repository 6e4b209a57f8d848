"""
Service Wiring

Explicit dependency-injected construction of every tileproof service from a
RuntimeConfig. There is no module-level default instance; hosts build one
ProofServices and pass it (or its members) where needed.

Usage:
    config = RuntimeConfig.from_yaml("tileproof.yaml").with_env_overrides()
    services = ProofServices.from_config(config)

    commitment = services.engine.compute_commitment(image_bytes)
    chain = services.new_chain(commitment)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from tileproof.batch.processor import BatchProcessor
from tileproof.chain.exporter import ProofChainExporter
from tileproof.chain.importer import ProofChainImporter
from tileproof.chain.manager import ProofChainManager
from tileproof.commitment.engine import TileCommitment, TileCommitmentEngine
from tileproof.config.runtime import RuntimeConfig
from tileproof.fraud.detector import FastFraudDetector
from tileproof.privacy.redaction import RegionalRedactionService
from tileproof.privacy.selective_reveal import SelectiveRevealService
from tileproof.proofs.generator import TransformationProofGenerator
from tileproof.proofs.verifier import TransformationProofVerifier
from tileproof.schemas.commitment import OriginalCommitmentRef
from tileproof.schemas.privacy import RedactionOptions
from tileproof.video.extension import VideoProofExtension
from tileproof.video.verifier import VideoProofVerifier

logger = logging.getLogger(__name__)


@dataclass
class ProofServices:
    """Every service, sharing one commitment engine."""

    config: RuntimeConfig
    engine: TileCommitmentEngine
    generator: TransformationProofGenerator
    verifier: TransformationProofVerifier
    reveal: SelectiveRevealService
    redaction: RegionalRedactionService
    fraud: FastFraudDetector
    batch: BatchProcessor
    exporter: ProofChainExporter
    importer: ProofChainImporter = field(default_factory=ProofChainImporter)
    video: VideoProofExtension | None = None
    video_verifier: VideoProofVerifier | None = None

    @classmethod
    def from_config(cls, config: RuntimeConfig | None = None) -> "ProofServices":
        """
        Build all services from `config` (defaults when omitted).

        Args:
            config: Runtime configuration
        """
        config = config or RuntimeConfig()

        engine = TileCommitmentEngine(
            tile_size=config.commitment.tile_size,
            max_dimension=config.commitment.max_dimension,
        )
        generator = TransformationProofGenerator(
            engine,
            grayscale_sample_count=config.proofs.grayscale_sample_count,
            adjustment_bounds=config.proofs.adjustment_bounds,
            aspect_epsilon=config.proofs.aspect_epsilon,
        )
        verifier = TransformationProofVerifier(engine, adjustment_bounds=config.proofs.adjustment_bounds)
        reveal = SelectiveRevealService(engine, max_tile_proofs=config.proofs.max_tile_proofs)
        redaction = RegionalRedactionService(
            engine,
            RedactionOptions(
                blur_sigma=config.proofs.redaction_blur_sigma,
                fill_color=config.proofs.redaction_fill_color,
                spot_check_count=config.proofs.spot_check_count,
            ),
        )
        fraud = FastFraudDetector(
            max_proof_age=timedelta(hours=config.fraud.max_proof_age_hours),
            max_future_skew=timedelta(seconds=config.fraud.max_future_skew_s),
            max_dimension_ratio=config.fraud.max_dimension_ratio,
            min_dimension=config.fraud.min_dimension,
            max_dimension=config.fraud.max_dimension,
        )
        video = VideoProofExtension(
            engine,
            generator,
            keyframe_interval=config.video.keyframe_interval,
            assumed_fps=config.video.assumed_fps,
        )
        video_verifier = VideoProofVerifier(engine)
        batch = BatchProcessor(
            engine, generator, verifier, reveal, redaction, fraud,
            video_verifier=video_verifier,
            max_concurrent=config.batch.max_concurrent,
        )
        exporter = ProofChainExporter(
            verification_base_url=config.export.verification_base_url,
            qr_max_bytes=config.export.qr_max_bytes,
            compression_level=config.export.compression_level,
        )

        logger.debug(
            "Built proof services: tile_size=%d max_concurrent=%d",
            config.commitment.tile_size, config.batch.max_concurrent,
        )
        return cls(
            config=config,
            engine=engine,
            generator=generator,
            verifier=verifier,
            reveal=reveal,
            redaction=redaction,
            fraud=fraud,
            batch=batch,
            exporter=exporter,
            importer=ProofChainImporter(),
            video=video,
            video_verifier=video_verifier,
        )

    def new_chain(
        self, original: TileCommitment | OriginalCommitmentRef, chain_id: str | None = None,
    ) -> ProofChainManager:
        """Start a proof chain using the configured linkage policy."""
        return ProofChainManager(
            original, enforce_linkage=self.config.chain.enforce_linkage, chain_id=chain_id,
        )
