"""
Pytest configuration and shared fixtures for tileproof tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_images = importlib.import_module("fixtures.images")

make_png = _images.make_png
make_gradient_png = _images.make_gradient_png
make_solid_png = _images.make_solid_png
make_keyframes = _images.make_keyframes

from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.config.runtime import RuntimeConfig
from tileproof.services import ProofServices


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def engine():
    """Commitment engine with the default 32px tiles."""
    return TileCommitmentEngine()


@pytest.fixture
def services():
    """Every service wired from a default RuntimeConfig."""
    return ProofServices.from_config(RuntimeConfig())


@pytest.fixture(scope="session")
def image_256():
    """256x256 gradient PNG (8x8 tiles of 32px)."""
    return make_gradient_png(256, 256)


@pytest.fixture(scope="session")
def image_100x60():
    """Non tile-aligned PNG (4x2 tiles of 32px, truncated edges)."""
    return make_gradient_png(100, 60, seed=7)


@pytest.fixture(scope="session")
def keyframes():
    """Five distinct 64x64 keyframes."""
    return make_keyframes(5, 64, 64)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


# =============================================================================
# Test Helpers (available to all tests via fixtures)
# =============================================================================

@pytest.fixture
def assert_check_passed():
    """Helper to assert a specific check passed in VerificationResult."""
    def _assert(result, check_id: str):
        checks = [c for c in result.checks if c.check_id == check_id]
        assert len(checks) == 1, f"Expected check '{check_id}' not found in {[c.check_id for c in result.checks]}"
        assert checks[0].ok, f"Check '{check_id}' failed: {checks[0].message}"
    return _assert


@pytest.fixture
def assert_check_failed():
    """Helper to assert a specific check failed in VerificationResult."""
    def _assert(result, check_id: str):
        checks = [c for c in result.checks if c.check_id == check_id]
        assert len(checks) == 1, f"Expected check '{check_id}' not found in {[c.check_id for c in result.checks]}"
        assert not checks[0].ok, f"Check '{check_id}' unexpectedly passed"
    return _assert
