from beanie import Document
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel
from enum import Enum
from typing import Optional, List
from datetime import datetime

from fdcatalog.core.config import settings

ON_MATURITY = "On Maturity"


class PayoutFrequencyEnum(str, Enum):
    monthly = "Monthly"
    quarterly = "Quarterly"
    half_yearly = "Half-Yearly"
    annually = "Annually"
    on_maturity = ON_MATURITY


class CompoundingFrequencyEnum(str, Enum):
    monthly = "Monthly"
    quarterly = "Quarterly"
    half_yearly = "Half-Yearly"
    annually = "Annually"


class RateSlab(BaseModel):
    slab_id: str = Field(..., min_length=1, description="Identifier of the slab, unique within its scheme")
    tenure_min_months: int = Field(..., ge=0, description="Lower bound of the tenure band in months (inclusive)")
    tenure_max_months: int = Field(..., ge=0, description="Upper bound of the tenure band in months (inclusive)")
    payout_frequency_type: PayoutFrequencyEnum = Field(..., description="Payout frequency this slab applies to")
    base_interest_rate_pa: float = Field(..., ge=0, description="Base annual interest rate in percent, e.g. 7.25")
    is_active: bool = Field(default=True, description="Inactive slabs are never matched during rate resolution")
    compounding_frequency: Optional[CompoundingFrequencyEnum] = Field(None, description="Compounding frequency (cumulative schemes only)")
    effective_yield_pa: Optional[float] = Field(None, description="Precomputed effective annual yield in percent (cumulative schemes only)")

    class Config:
        use_enum_values = True


class FDScheme(BaseModel):
    scheme_id: str = Field(..., min_length=1, description="Identifier of the scheme, unique within its issuer")
    scheme_name: Optional[str] = Field(None, description="Display name of the scheme")
    is_cumulative: bool = Field(..., description="Cumulative schemes compound and pay out only at maturity")
    payout_frequency_type: Optional[List[PayoutFrequencyEnum]] = Field(None, description="Allowed payout frequencies")
    min_tenure_months: int = Field(..., ge=0, description="Minimum tenure in months")
    max_tenure_months: int = Field(..., ge=0, description="Maximum tenure in months")
    premature_allowed: bool = Field(default=False, description="Whether premature withdrawal is allowed")
    premature_terms: Optional[str] = Field(None, description="Premature withdrawal terms (required when allowed)")
    senior_citizen_bonus_bps: int = Field(default=0, ge=0, description="Senior citizen bonus in basis points")
    women_bonus_bps: int = Field(default=0, ge=0, description="Women depositor bonus in basis points")
    renewal_bonus_bps: int = Field(default=0, ge=0, description="Renewal bonus in basis points")
    is_active: bool = Field(default=True, description="Indicates if the scheme is offered")
    rate_slabs: Optional[List[RateSlab]] = Field(default_factory=list, description="Ordered rate slabs of the scheme")

    class Config:
        use_enum_values = True


class FDIssuer(BaseModel):
    """An issuer with its schemes and rate slabs, persisted as a single document."""
    issuer_key: str = Field(..., min_length=1, description="Unique, immutable key of the issuer")
    name: str = Field(..., description="Display name of the issuer")
    short_name: Optional[str] = Field(None, description="Short name the key is derived from")
    issuer_type: Optional[str] = Field(None, description="Issuer category, e.g. Bank, NBFC, Corporate")
    is_active: bool = Field(default=True, description="Indicates if the issuer is listed")
    schemes: List[FDScheme] = Field(default_factory=list, description="Ordered schemes offered by the issuer")
    revision: int = Field(default=0, ge=0, description="Incremented by every whole-document replace")
    created_at: Optional[datetime] = Field(None, description="Timestamp when the issuer was created")
    updated_at: Optional[datetime] = Field(None, description="Timestamp when the issuer was last replaced")

    def find_scheme(self, scheme_id: str) -> Optional[FDScheme]:
        index = self.scheme_index(scheme_id)
        return self.schemes[index] if index is not None else None

    def scheme_index(self, scheme_id: str) -> Optional[int]:
        for index, scheme in enumerate(self.schemes):
            if scheme.scheme_id == scheme_id:
                return index
        return None


class FDIssuerDocument(Document, FDIssuer):
    class Settings:
        name = settings.FD_ISSUER_COLLECTION
        indexes = [
            IndexModel([("issuer_key", ASCENDING)], unique=True, name="issuer_key_unique"),
        ]

    def to_issuer(self) -> FDIssuer:
        return FDIssuer.model_validate(self.model_dump(exclude={"id", "revision_id"}))

    @classmethod
    def from_issuer(cls, issuer: FDIssuer) -> "FDIssuerDocument":
        return cls(**issuer.model_dump())
