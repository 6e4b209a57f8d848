"""
Runtime Configuration

Central configuration for commitment geometry, proof generation, fraud
filtering, batching, chains, exports and video processing.
"""

from __future__ import annotations

import copy
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv

load_dotenv()


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CommitmentConfig:
    """Tile geometry and decode limits."""
    tile_size: int = 32
    max_dimension: int = 100_000


@dataclass
class ProofConfig:
    """Configuration for proof generators and the privacy services."""
    grayscale_sample_count: int = 10
    adjustment_min: float = 0.0
    adjustment_max: float = 3.0
    aspect_epsilon: float = 0.01
    max_tile_proofs: int = 4
    redaction_blur_sigma: float = 20.0
    redaction_fill_color: str = "#000000"
    spot_check_count: int = 10

    @property
    def adjustment_bounds(self) -> tuple[float, float]:
        return self.adjustment_min, self.adjustment_max


@dataclass
class FraudConfig:
    """Thresholds for the fast fraud pre-filter."""
    max_proof_age_hours: float = 24.0
    max_future_skew_s: float = 60.0
    max_dimension_ratio: float = 100.0
    min_dimension: int = 1
    max_dimension: int = 100_000


@dataclass
class BatchConfig:
    max_concurrent: int = 4


@dataclass
class ChainConfig:
    enforce_linkage: bool = True


@dataclass
class ExportConfig:
    """Configuration for proof-chain exports."""
    verification_base_url: str = "https://verify.tileproof.dev"
    qr_max_bytes: int = 2000
    compression_level: int = 9


@dataclass
class VideoConfig:
    keyframe_interval: int = 30
    assumed_fps: float = 30.0


# (section, key, parser) per environment variable
_ENV_OVERRIDES: dict[str, tuple[Optional[str], str, Callable[[str], Any]]] = {
    "TILEPROOF_TILE_SIZE": ("commitment", "tile_size", int),
    "TILEPROOF_MAX_DIMENSION": ("commitment", "max_dimension", int),
    "TILEPROOF_GRAYSCALE_SAMPLES": ("proofs", "grayscale_sample_count", int),
    "TILEPROOF_MAX_TILE_PROOFS": ("proofs", "max_tile_proofs", int),
    "TILEPROOF_MAX_PROOF_AGE_HOURS": ("fraud", "max_proof_age_hours", float),
    "TILEPROOF_MAX_CONCURRENT": ("batch", "max_concurrent", int),
    "TILEPROOF_ENFORCE_LINKAGE": ("chain", "enforce_linkage", _parse_bool),
    "TILEPROOF_VERIFICATION_BASE_URL": ("export", "verification_base_url", str),
    "TILEPROOF_QR_MAX_BYTES": ("export", "qr_max_bytes", int),
    "TILEPROOF_KEYFRAME_INTERVAL": ("video", "keyframe_interval", int),
    "TILEPROOF_LOG_LEVEL": (None, "log_level", str),
}


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for tileproof.

    Can be loaded from:
    - Environment variables (TILEPROOF_*, .env honoured)
    - YAML file
    - Programmatic construction
    """
    commitment: CommitmentConfig = field(default_factory=CommitmentConfig)
    proofs: ProofConfig = field(default_factory=ProofConfig)
    fraud: FraudConfig = field(default_factory=FraudConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    video: VideoConfig = field(default_factory=VideoConfig)
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the single place environment variables are read. Values
        that fail to parse raise ValueError naming the variable.
        """
        overrides: dict[str, Any] = {}
        for name, (section, key, parse) in _ENV_OVERRIDES.items():
            raw = os.getenv(name)
            if not raw:
                continue
            try:
                value = parse(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {name}: {raw!r}") from e
            if section is None:
                overrides[key] = value
            else:
                overrides.setdefault(section, {})[key] = value
        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        return cls(
            commitment=CommitmentConfig(**(data.get("commitment") or {})),
            proofs=ProofConfig(**(data.get("proofs") or {})),
            fraud=FraudConfig(**(data.get("fraud") or {})),
            batch=BatchConfig(**(data.get("batch") or {})),
            chain=ChainConfig(**(data.get("chain") or {})),
            export=ExportConfig(**(data.get("export") or {})),
            video=VideoConfig(**(data.get("video") or {})),
            log_level=data.get("log_level", "INFO"),
            extra=data.get("extra", {}),
        )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for section, values in overrides.items():
            if isinstance(values, dict):
                target = getattr(new_config, section)
                for key, value in values.items():
                    setattr(target, key, value)
            else:
                setattr(new_config, section, values)
        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return asdict(self)


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure root logging for a host application.

    The library itself never installs handlers.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )
