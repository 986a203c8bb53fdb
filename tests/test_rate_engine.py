import pytest

from fdcatalog.core.exceptions import NoMatchingSlab, SchemeNotFound
from fdcatalog.database.models.fd_issuer_model import RateSlab
from fdcatalog.services.rate_engine import (
    compounding_periods,
    effective_annual_yield,
    find_matching_slab,
    resolve_rate,
)

from tests.conftest import make_issuer


def test_women_and_senior_bonuses_add_to_base_rate():
    issuer = make_issuer()

    result = resolve_rate(issuer, "NC", 18, "Monthly", is_senior_citizen=True, is_woman=True)

    assert result.slab_id == "M1"
    assert result.base_rate_pa == 6.5
    assert result.total_rate_pa == 7.25
    assert result.bonuses.senior_citizen == 0.5
    assert result.bonuses.women == 0.25
    assert result.bonuses.renewal == 0.0
    assert result.effective_yield_pa is None


def test_all_three_bonuses_apply_together():
    issuer = make_issuer()

    result = resolve_rate(issuer, "CUM", 12, "On Maturity",
                          is_senior_citizen=True, is_woman=True, is_renewal=True)

    assert result.total_rate_pa == pytest.approx(7.85)
    assert result.bonuses.renewal == pytest.approx(0.10)


def test_cumulative_quarterly_effective_yield_is_computed():
    issuer = make_issuer()

    result = resolve_rate(issuer, "CUM", 18, "On Maturity")

    assert result.slab_id == "C1"
    assert result.total_rate_pa == 7.0
    assert result.compounding_frequency == "Quarterly"
    assert result.effective_yield_pa == pytest.approx(7.19)


def test_effective_yield_uses_total_rate_including_bonuses():
    issuer = make_issuer()

    result = resolve_rate(issuer, "CUM", 18, "On Maturity", is_senior_citizen=True)

    assert result.total_rate_pa == 7.5
    assert result.effective_yield_pa == effective_annual_yield(7.5, "Quarterly")


def test_precomputed_effective_yield_is_returned_rounded():
    issuer = make_issuer()

    result = resolve_rate(issuer, "CUM", 36, "On Maturity", is_senior_citizen=True)

    assert result.slab_id == "C2"
    assert result.effective_yield_pa == 7.5


def test_cumulative_slab_without_compounding_has_no_yield():
    issuer = make_issuer()
    issuer.schemes[0].rate_slabs[0].compounding_frequency = None

    result = resolve_rate(issuer, "CUM", 18, "On Maturity")

    assert result.effective_yield_pa is None


def test_overlapping_slabs_resolve_to_first_in_stored_order():
    issuer = make_issuer()
    nc = issuer.schemes[1]
    nc.rate_slabs = [
        RateSlab(slab_id="WIDE", tenure_min_months=12, tenure_max_months=60,
                 payout_frequency_type="Monthly", base_interest_rate_pa=6.4),
        RateSlab(slab_id="NARROW", tenure_min_months=12, tenure_max_months=24,
                 payout_frequency_type="Monthly", base_interest_rate_pa=6.9),
    ]

    assert resolve_rate(issuer, "NC", 18, "Monthly").slab_id == "WIDE"

    nc.rate_slabs.reverse()
    assert resolve_rate(issuer, "NC", 18, "Monthly").slab_id == "NARROW"


def test_inactive_slabs_are_skipped():
    issuer = make_issuer()
    issuer.schemes[1].rate_slabs[0].is_active = False

    with pytest.raises(NoMatchingSlab):
        resolve_rate(issuer, "NC", 18, "Monthly")


@pytest.mark.parametrize("tenure, slab_id", [(12, "M1"), (36, "M1"), (37, "M2"), (60, "M2")])
def test_tenure_bounds_are_inclusive(tenure, slab_id):
    assert resolve_rate(make_issuer(), "NC", tenure, "Monthly").slab_id == slab_id


def test_payout_frequency_must_match():
    result = resolve_rate(make_issuer(), "NC", 18, "Quarterly")

    assert result.slab_id == "Q1"
    with pytest.raises(NoMatchingSlab):
        resolve_rate(make_issuer(), "NC", 18, "Half-Yearly")


def test_tenure_outside_every_slab():
    with pytest.raises(NoMatchingSlab) as exc_info:
        resolve_rate(make_issuer(), "NC", 61, "Monthly")

    assert exc_info.value.tenure_months == 61


def test_unknown_scheme():
    with pytest.raises(SchemeNotFound) as exc_info:
        resolve_rate(make_issuer(), "NOPE", 12, "Monthly")

    assert exc_info.value.scheme_id == "NOPE"


def test_resolution_is_idempotent():
    issuer = make_issuer()

    first = resolve_rate(issuer, "CUM", 18, "On Maturity", is_woman=True)
    second = resolve_rate(issuer, "CUM", 18, "On Maturity", is_woman=True)

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_result_is_immutable():
    result = resolve_rate(make_issuer(), "NC", 18, "Monthly")

    with pytest.raises(Exception):
        result.total_rate_pa = 99.0


@pytest.mark.parametrize("label, periods", [
    ("Monthly", 12), ("Quarterly", 4), ("Half-Yearly", 2), ("Annually", 1), (None, 1),
])
def test_compounding_periods(label, periods):
    assert compounding_periods(label) == periods


def test_annual_compounding_yield_equals_nominal_rate():
    assert effective_annual_yield(7.0, "Annually") == 7.0


def test_find_matching_slab_returns_none_for_scheme_without_slabs():
    scheme = make_issuer().schemes[0]
    scheme.rate_slabs = None

    assert find_matching_slab(scheme, 12, "On Maturity") is None
