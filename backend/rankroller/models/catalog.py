from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Rank(BaseModel):
    """One of the hundred entries of the primary roll table."""

    index: int = Field(..., ge=0, le=99)
    tier: int = Field(..., ge=0, le=9, description="Rarity band, index // 10")
    tier_slot: int = Field(..., ge=0, le=9, description="Position inside the band")
    tier_name: str
    display_name: str
    weight: float = Field(..., gt=0)
    probability: float = Field(..., gt=0)

    model_config = ConfigDict(frozen=True)


class Rune(BaseModel):
    """One of the ten entries of the rune altar table."""

    index: int = Field(..., ge=0, le=9)
    name: str
    effect: str
    weight: float = Field(..., gt=0)
    probability: float = Field(..., gt=0)

    model_config = ConfigDict(frozen=True)
