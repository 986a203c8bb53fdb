"""
Business rules for the FD catalog.

Each rule is a named predicate plus a message builder. ``validate_issuer``
evaluates every scheme rule against every scheme, then every slab rule
against every slab of that scheme, and collects one message per failing
check. Nothing short-circuits, so a single scheme can report several
violations. Adding a rule means appending one entry to ``SCHEME_RULES`` or
``SLAB_RULES``.

A scheme without a ``payout_frequency_type`` list (or without
``rate_slabs``) passes the checks that depend on it. Absence is not itself
reported as a violation.
"""

import logging
from typing import Callable, List, NamedTuple

from fdcatalog.database.models.fd_issuer_model import FDIssuer, FDScheme, RateSlab, ON_MATURITY

logger = logging.getLogger(__name__)


class SchemeRule(NamedTuple):
    name: str
    check: Callable[[FDScheme], bool]
    message: Callable[[FDScheme], str]


class SlabRule(NamedTuple):
    name: str
    check: Callable[[FDScheme, RateSlab], bool]
    message: Callable[[FDScheme, RateSlab], str]


def _frequencies(scheme: FDScheme) -> List[str]:
    return list(scheme.payout_frequency_type or [])


SCHEME_RULES: List[SchemeRule] = [
    SchemeRule(
        "tenure_range",
        lambda s: s.min_tenure_months <= s.max_tenure_months,
        lambda s: f"min_tenure_months ({s.min_tenure_months}) must be <= max_tenure_months ({s.max_tenure_months})",
    ),
    SchemeRule(
        "cumulative_pays_on_maturity",
        lambda s: not s.is_cumulative or all(f == ON_MATURITY for f in _frequencies(s)),
        lambda s: f'Cumulative schemes must only have "{ON_MATURITY}" payout frequency',
    ),
    SchemeRule(
        "non_cumulative_excludes_maturity",
        lambda s: s.is_cumulative or ON_MATURITY not in _frequencies(s),
        lambda s: f'Non-cumulative schemes cannot have "{ON_MATURITY}" payout frequency',
    ),
    SchemeRule(
        "premature_terms_required",
        lambda s: not s.premature_allowed or bool(s.premature_terms and s.premature_terms.strip()),
        lambda s: "premature_terms is required when premature_allowed is true",
    ),
]

SLAB_RULES: List[SlabRule] = [
    SlabRule(
        "slab_tenure_range",
        lambda s, slab: slab.tenure_min_months <= slab.tenure_max_months,
        lambda s, slab: (
            f"tenure_min_months ({slab.tenure_min_months}) must be <= "
            f"tenure_max_months ({slab.tenure_max_months})"
        ),
    ),
    SlabRule(
        "slab_frequency_allowed",
        lambda s, slab: s.payout_frequency_type is None or slab.payout_frequency_type in _frequencies(s),
        lambda s, slab: f'payout_frequency_type "{slab.payout_frequency_type}" not allowed in scheme',
    ),
]


def validate_issuer(issuer: FDIssuer) -> List[str]:
    """Return every business-rule violation in ``issuer``; empty when valid."""
    errors: List[str] = []

    for scheme_pos, scheme in enumerate(issuer.schemes or [], start=1):
        for rule in SCHEME_RULES:
            if not rule.check(scheme):
                errors.append(f"Scheme {scheme_pos}: {rule.message(scheme)}")

        for slab_pos, slab in enumerate(scheme.rate_slabs or [], start=1):
            for rule in SLAB_RULES:
                if not rule.check(scheme, slab):
                    errors.append(f"Scheme {scheme_pos}, Slab {slab_pos}: {rule.message(scheme, slab)}")

    if errors:
        logger.debug(f"Issuer {issuer.issuer_key} failed validation with {len(errors)} violation(s)")
    return errors
