"""
Module 01 - Schemas & Canonicalization
File: commitment.py

Purpose: Public geometry and commitment records. These are the only views
of a tile commitment that ever leave the engine: roots and grid geometry,
never the leaf list.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Region(BaseModel):
    """Axis-aligned pixel rectangle. `x`/`y` is the top-left corner."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_key(self) -> str:
        """Compact "x,y,w,h" form used inside binding commitments."""
        return f"{self.x},{self.y},{self.width},{self.height}"

    def fits_within(self, width: int, height: int) -> bool:
        return self.right <= width and self.bottom <= height

    def clip(self, width: int, height: int) -> "Region | None":
        """
        Clip this region to a `width` x `height` canvas.

        Returns None if the region does not intersect the canvas at all.
        """
        right = min(self.right, width)
        bottom = min(self.bottom, height)
        if right <= self.x or bottom <= self.y:
            return None
        return self.model_copy(update={"width": right - self.x, "height": bottom - self.y})

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "Region":
        """Build a region from transformation params (`left`/`top` or `x`/`y`)."""
        x = params.get("left", params.get("x", 0))
        y = params.get("top", params.get("y", 0))
        return cls(x=int(x), y=int(y), width=int(params["width"]), height=int(params["height"]))


class TileRange(BaseModel):
    """Half-open tile-grid range `[x_start, x_end) x [y_start, y_end)`."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x_start: int = Field(..., ge=0)
    x_end: int = Field(..., ge=0)
    y_start: int = Field(..., ge=0)
    y_end: int = Field(..., ge=0)

    @property
    def columns(self) -> int:
        return max(0, self.x_end - self.x_start)

    @property
    def rows(self) -> int:
        return max(0, self.y_end - self.y_start)

    @property
    def count(self) -> int:
        return self.columns * self.rows

    def contains(self, tile_x: int, tile_y: int) -> bool:
        return self.x_start <= tile_x < self.x_end and self.y_start <= tile_y < self.y_end

    def indices(self, tiles_x: int) -> list[int]:
        """Row-major leaf indices covered by this range."""
        return [
            ty * tiles_x + tx
            for ty in range(self.y_start, self.y_end)
            for tx in range(self.x_start, self.x_end)
        ]

    def corners(self, tiles_x: int) -> list[int]:
        """Leaf indices of the four corner tiles, deduplicated, in order."""
        if self.count == 0:
            return []
        candidates = [
            (self.x_start, self.y_start),
            (self.x_end - 1, self.y_start),
            (self.x_start, self.y_end - 1),
            (self.x_end - 1, self.y_end - 1),
        ]
        seen: list[int] = []
        for tx, ty in candidates:
            index = ty * tiles_x + tx
            if index not in seen:
                seen.append(index)
        return seen

    @classmethod
    def for_region(cls, region: Region, tile_size: int, tiles_x: int, tiles_y: int) -> "TileRange":
        """
        Tile range overlapping `region`, clipped to the grid.

        x: [floor(x / ts), ceil((x + w) / ts)), same for y.
        """
        return cls(
            x_start=min(region.x // tile_size, tiles_x),
            x_end=min(math.ceil(region.right / tile_size), tiles_x),
            y_start=min(region.y // tile_size, tiles_y),
            y_end=min(math.ceil(region.bottom / tile_size), tiles_y),
        )


class CommitmentSummary(BaseModel):
    """Public summary of a tile commitment."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    root: str = Field(..., min_length=1)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    tile_size: int = Field(..., gt=0)
    tiles_x: int = Field(..., gt=0)
    tiles_y: int = Field(..., gt=0)
    total_tiles: int = Field(..., gt=0)
    depth: int = Field(..., ge=0)


class OriginalCommitmentRef(BaseModel):
    """Reference to an original image commitment embedded in proofs."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    root: str = Field(..., min_length=1)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    tile_size: int = Field(..., gt=0)
    tiles_x: int = Field(..., gt=0)
    tiles_y: int = Field(..., gt=0)

    @property
    def total_tiles(self) -> int:
        return self.tiles_x * self.tiles_y


class TransformedCommitmentRef(BaseModel):
    """Reference to a derived image commitment embedded in proofs."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    root: str = Field(..., min_length=1)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    tile_size: int = Field(..., gt=0)


class MerklePathStep(BaseModel):
    """One step of a serialized Merkle path. `is_left`: sibling is on the left."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    sibling: str
    is_left: bool


class TileInclusionProof(BaseModel):
    """Leaf hash plus Merkle path proving one tile belongs to a root."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tile_index: int = Field(..., ge=0)
    tile_x: int = Field(..., ge=0)
    tile_y: int = Field(..., ge=0)
    leaf_hash: str
    path: list[MerklePathStep] = Field(default_factory=list)
