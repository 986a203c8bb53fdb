from pydantic import BaseModel, Field
from typing import List, Optional

from fdcatalog.database.models.fd_issuer_model import (
    FDScheme,
    RateSlab,
    PayoutFrequencyEnum,
    CompoundingFrequencyEnum,
)


class IssuerCreateRequest(BaseModel):
    """Request body for creating an issuer. ``issuer_key`` is derived from ``short_name`` when omitted."""
    issuer_key: Optional[str] = Field(None, min_length=1, description="Explicit issuer key; must be unused")
    name: str = Field(..., min_length=1, description="Display name of the issuer")
    short_name: str = Field(..., min_length=1, description="Short name the key is derived from")
    issuer_type: Optional[str] = Field(None, description="Issuer category")
    is_active: Optional[bool] = Field(None, description="Defaults to true")
    schemes: Optional[List[FDScheme]] = Field(None, description="Initial schemes, defaults to none")


class IssuerUpdateRequest(BaseModel):
    """Top-level issuer fields. Only the fields present in the request are merged."""
    name: Optional[str] = Field(None, min_length=1)
    short_name: Optional[str] = None
    issuer_type: Optional[str] = None
    is_active: Optional[bool] = None
    schemes: Optional[List[FDScheme]] = None


class SchemeUpdateRequest(BaseModel):
    """Scheme fields to merge over the stored scheme. ``scheme_id`` is taken from the path."""
    scheme_name: Optional[str] = None
    is_cumulative: Optional[bool] = None
    payout_frequency_type: Optional[List[PayoutFrequencyEnum]] = None
    min_tenure_months: Optional[int] = Field(None, ge=0)
    max_tenure_months: Optional[int] = Field(None, ge=0)
    premature_allowed: Optional[bool] = None
    premature_terms: Optional[str] = None
    senior_citizen_bonus_bps: Optional[int] = Field(None, ge=0)
    women_bonus_bps: Optional[int] = Field(None, ge=0)
    renewal_bonus_bps: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    rate_slabs: Optional[List[RateSlab]] = None

    class Config:
        use_enum_values = True


class SlabUpdateRequest(BaseModel):
    """Slab fields to merge over the stored slab. ``slab_id`` is taken from the path."""
    tenure_min_months: Optional[int] = Field(None, ge=0)
    tenure_max_months: Optional[int] = Field(None, ge=0)
    payout_frequency_type: Optional[PayoutFrequencyEnum] = None
    base_interest_rate_pa: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None
    compounding_frequency: Optional[CompoundingFrequencyEnum] = None
    effective_yield_pa: Optional[float] = None

    class Config:
        use_enum_values = True


class RateRequest(BaseModel):
    """Deposit request for which an effective interest rate is resolved."""
    issuer_key: str = Field(..., min_length=1)
    scheme_id: str = Field(..., min_length=1)
    tenure_months: int = Field(..., gt=0, description="Deposit tenure in months")
    payout_frequency: PayoutFrequencyEnum = Field(..., description="Requested payout frequency")
    senior_citizen: bool = Field(default=False)
    women: bool = Field(default=False)
    renewal: bool = Field(default=False)

    class Config:
        use_enum_values = True


class RateBonuses(BaseModel):
    senior_citizen: float = Field(..., description="Senior citizen bonus applied, in percent")
    women: float = Field(..., description="Women depositor bonus applied, in percent")
    renewal: float = Field(..., description="Renewal bonus applied, in percent")

    class Config:
        frozen = True


class RateResult(BaseModel):
    base_rate_pa: float = Field(..., description="Base annual rate of the matched slab, in percent")
    total_rate_pa: float = Field(..., description="Base rate plus applicable bonuses, in percent")
    effective_yield_pa: Optional[float] = Field(None, description="Effective annual yield (cumulative schemes only)")
    bonuses: RateBonuses
    slab_id: str = Field(..., description="Identifier of the matched slab")
    compounding_frequency: Optional[str] = Field(None, description="Compounding frequency of the matched slab")

    class Config:
        frozen = True


class MessageResponse(BaseModel):
    message: str
