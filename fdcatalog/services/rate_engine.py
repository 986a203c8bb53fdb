"""
Interest-rate resolution for FD deposit requests.

Slab selection is first-match in stored order: slabs of a scheme may
overlap in tenure for the same payout frequency, and the earliest active
slab that covers the requested tenure wins.

Bonuses are stored in basis points and converted to percent (bps / 100)
before being added to the slab's base rate. Sums are taken in ``Decimal``
so that e.g. 7.10 + 0.25 reports as 7.35.
"""

import logging
from decimal import Decimal
from typing import Optional

from fdcatalog.core.exceptions import SchemeNotFound, NoMatchingSlab
from fdcatalog.database.models.fd_issuer_model import FDIssuer, FDScheme, RateSlab
from fdcatalog.schemas.fd_scheme_schema import RateBonuses, RateResult

logger = logging.getLogger(__name__)

COMPOUNDING_PERIODS_PER_YEAR = {
    "Monthly": 12,
    "Quarterly": 4,
    "Half-Yearly": 2,
}


def compounding_periods(compounding_frequency: Optional[str]) -> int:
    """Compounding periods per year; unknown labels and Annually compound once."""
    return COMPOUNDING_PERIODS_PER_YEAR.get(compounding_frequency, 1)


def effective_annual_yield(rate_pa: float, compounding_frequency: Optional[str]) -> float:
    """Effective annual yield in percent, rounded to 2 decimal places."""
    r = rate_pa / 100
    n = compounding_periods(compounding_frequency)
    return round(((1 + r / n) ** n - 1) * 100, 2)


def bps_to_percent(bps: int) -> Decimal:
    return Decimal(bps or 0) / 100


def find_matching_slab(scheme: FDScheme, tenure_months: int, payout_frequency: str) -> Optional[RateSlab]:
    for slab in scheme.rate_slabs or []:
        if (
            slab.payout_frequency_type == payout_frequency
            and slab.tenure_min_months <= tenure_months <= slab.tenure_max_months
            and slab.is_active
        ):
            return slab
    return None


def resolve_rate(
    issuer: FDIssuer,
    scheme_id: str,
    tenure_months: int,
    payout_frequency: str,
    is_senior_citizen: bool = False,
    is_woman: bool = False,
    is_renewal: bool = False,
) -> RateResult:
    """Resolve the applicable rate of ``scheme_id`` for a deposit.

    Raises SchemeNotFound when the issuer has no such scheme and
    NoMatchingSlab when no active slab covers the tenure and payout
    frequency.
    """
    scheme = issuer.find_scheme(scheme_id)
    if scheme is None:
        raise SchemeNotFound(issuer.issuer_key, scheme_id)

    slab = find_matching_slab(scheme, tenure_months, payout_frequency)
    if slab is None:
        raise NoMatchingSlab(scheme_id, tenure_months, payout_frequency)

    zero = Decimal(0)
    senior_bonus = bps_to_percent(scheme.senior_citizen_bonus_bps) if is_senior_citizen else zero
    women_bonus = bps_to_percent(scheme.women_bonus_bps) if is_woman else zero
    renewal_bonus = bps_to_percent(scheme.renewal_bonus_bps) if is_renewal else zero

    base_rate = Decimal(str(slab.base_interest_rate_pa))
    total_rate = float(base_rate + senior_bonus + women_bonus + renewal_bonus)

    effective_yield = None
    if scheme.is_cumulative and slab.effective_yield_pa is not None:
        effective_yield = round(slab.effective_yield_pa, 2)
    elif scheme.is_cumulative and slab.compounding_frequency:
        effective_yield = effective_annual_yield(total_rate, slab.compounding_frequency)

    logger.debug(
        f"Resolved rate for {issuer.issuer_key}/{scheme_id}: slab={slab.slab_id} "
        f"base={slab.base_interest_rate_pa} total={total_rate} effective={effective_yield}"
    )

    return RateResult(
        base_rate_pa=slab.base_interest_rate_pa,
        total_rate_pa=total_rate,
        effective_yield_pa=effective_yield,
        bonuses=RateBonuses(
            senior_citizen=float(senior_bonus),
            women=float(women_bonus),
            renewal=float(renewal_bonus),
        ),
        slab_id=slab.slab_id,
        compounding_frequency=slab.compounding_frequency,
    )
