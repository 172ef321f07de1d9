import pandas as pd
import pytest

from sotp.config.resolver import resolve_factors
from sotp.conftest import make_building
from sotp.conftest import make_period
from sotp.conftest import neutral_overrides
from sotp.engine.building_factors import compute_building_factors
from sotp.engine.building_factors import compute_period_factors


class TestComputeBuildingFactors:
  """Tests for the building-level multiplier chain."""

  def test_neutral_building(self, factors):
    """Operational PJM owned Tier III on a 250+ MW site is all 1.0."""
    building = make_building()
    result = compute_building_factors(building, 300.0, factors)

    assert result.building_factor == pytest.approx(1.0)

  def test_each_lookup(self, factors):
    building = make_building(development_phase='CONSTRUCTION',
                             grid='ERCOT',
                             ownership_status='Long-term lease',
                             datacenter_tier='Tier IV',
                             regulatory_risk=0.8,
                             fidoodle_factor=1.2)
    result = compute_building_factors(building, 600.0, factors)

    assert result.phase_probability.final == 0.9
    assert result.power_authority.final == 1.05
    assert result.ownership.final == 0.95
    assert result.tier.final == 1.15
    assert result.size.final == 1.10
    assert result.regulatory_risk == 0.8
    assert result.fidoodle == 1.2
    assert result.building_factor == pytest.approx(0.9 * 0.8 * 1.10 * 1.05 *
                                                   0.95 * 1.15)

  def test_missing_regulatory_risk_defaults_to_one(self, factors):
    building = make_building(regulatory_risk=None, fidoodle_factor=None)
    result = compute_building_factors(building, 300.0, factors)

    assert result.regulatory_risk == 1.0
    assert result.fidoodle == 1.0

  def test_tier_can_be_disabled(self):
    factors = resolve_factors({'applyTierMult': 0})
    building = make_building(datacenter_tier='Tier I')
    result = compute_building_factors(building, 300.0, factors)

    assert result.tier.final == 0.80
    assert result.tier_factor == 1.0
    assert result.building_factor == pytest.approx(1.0)


class TestComputePeriodFactors:
  """Tests for the combined factor of a use period."""

  def test_combined_is_product_of_sub_factors(self, factors, now):
    building = make_building(development_phase='CONSTRUCTION',
                             grid='ERCOT',
                             ownership_status='Long-term lease',
                             datacenter_tier='Tier IV',
                             regulatory_risk=0.8,
                             fidoodle_factor=1.2)
    period = make_period(lease_structure='Gross',
                         lease_start=now + pd.Timedelta(days=365.25))
    building_factors = compute_building_factors(building, 300.0, factors)
    result = compute_period_factors(building, building_factors, period,
                                    factors, now)

    expected = (0.9 * 0.8 * 1.05 * 0.95 * 1.0 * 1.15 * 0.90 * (1 / 1.1) *
                1.2)
    assert result.combined_factor == pytest.approx(expected)

  def test_overrides_of_one_give_one(self, factors, now):
    """Every override at 1.0 neutralizes otherwise penalizing inputs."""
    building = make_building(development_phase='DILIGENCE',
                             grid='Ethiopia',
                             ownership_status='Short-term lease',
                             datacenter_tier='Tier I',
                             energization_date=now + pd.Timedelta(days=900),
                             **neutral_overrides())
    period = make_period(lease_structure='Gross')
    building_factors = compute_building_factors(building, 10.0, factors)
    result = compute_period_factors(building, building_factors, period,
                                    factors, now)

    assert result.combined_factor == pytest.approx(1.0)

  def test_tenant_not_in_combined_factor(self, factors, now):
    building = make_building()
    period = make_period(tenant='Google')
    building_factors = compute_building_factors(building, 300.0, factors)
    result = compute_period_factors(building, building_factors, period,
                                    factors, now)

    assert result.tenant.value == pytest.approx(4.3 / 3.3)
    assert result.combined_factor == pytest.approx(1.0)

  def test_implicit_period_discounts_from_energization(self, factors, now):
    building = make_building(energization_date=now +
                             pd.Timedelta(days=365.25))
    building_factors = compute_building_factors(building, 300.0, factors)
    result = compute_period_factors(building, building_factors, None,
                                    factors, now)

    assert result.time_value.final == pytest.approx(1 / 1.1)
    assert result.tenant.value == 1.0

  def test_to_dict_keys(self, factors, now):
    building = make_building()
    building_factors = compute_building_factors(building, 300.0, factors)
    result = compute_period_factors(building, building_factors, make_period(),
                                    factors, now).to_dict()

    assert set(result) == {
        'phaseProb', 'regRisk', 'sizeMult', 'powerAuthMult', 'ownershipMult',
        'tierMult', 'fidoodle', 'buildingFactor', 'tenantCreditMult',
        'leaseStructMult', 'timeValueMult', 'combinedFactor'
    }
