import pytest

from sotp.config.resolver import resolve_factors
from sotp.conftest import make_building
from sotp.conftest import make_period
from sotp.conftest import neutral_overrides
from sotp.domain.types import ValuationCategory
from sotp.domain.types import ValuationMethod
from sotp.engine.building_factors import compute_building_factors
from sotp.engine.building_factors import compute_period_factors
from sotp.engine.periods import categorize
from sotp.engine.periods import compute_noi_annual
from sotp.engine.periods import normalize_noi_pct
from sotp.engine.periods import value_use_period


def _value(period, factors, now, mw=100.0, **building_kwargs):
  """Value a period on a building whose multipliers are all 1.0."""
  kwargs = neutral_overrides()
  kwargs.update(building_kwargs)
  building = make_building(use_periods=(period,) if period else (), **kwargs)
  building_factors = compute_building_factors(building, 300.0, factors)
  period_factors = compute_period_factors(building, building_factors, period,
                                          factors, now)
  return value_use_period(building, period, mw, period_factors, factors)


class TestCategorize:

  @pytest.mark.parametrize('use_type,expected', [
      ('BTC_MINING', ValuationCategory.MINING),
      ('BTC_MINING_HOSTING', ValuationCategory.MINING),
      ('HPC_AI_PLANNED', ValuationCategory.PIPELINE),
      ('UNCONTRACTED_ROFR', ValuationCategory.PIPELINE),
      ('', ValuationCategory.PIPELINE),
      ('HPC_AI_HOSTING', ValuationCategory.PIPELINE),
      ('COLOCATION', ValuationCategory.NONE),
      ('MIXED', ValuationCategory.NONE),
      ('TELECOM', ValuationCategory.NONE),
  ])
  def test_without_lease(self, use_type, expected):
    assert categorize(make_period(use_type=use_type)) == expected

  def test_gpu_cloud_with_lease(self):
    period = make_period(use_type='GPU_CLOUD',
                         tenant='Microsoft',
                         lease_value_m=100.0)

    assert categorize(period) == ValuationCategory.HPC_CONTRACTED

  def test_implicit_period(self):
    assert categorize(None) == ValuationCategory.PIPELINE


class TestValueUsePeriod:
  """Tests for use-type dispatch and valuation methods."""

  def test_mining(self, factors, now):
    """100 MW x $0.3M/MW."""
    result = _value(make_period(use_type='BTC_MINING'), factors, now)

    assert result.method == ValuationMethod.MW_VALUE
    assert result.valuation == pytest.approx(30.0)

  def test_pipeline(self, factors, now):
    """100 MW x $8M/MW, no tenant multiplier."""
    result = _value(make_period(use_type='HPC_AI_PLANNED', tenant='Google'),
                    factors, now)

    assert result.method == ValuationMethod.MW_PIPELINE
    assert result.valuation == pytest.approx(800.0)
    assert result.tenant_multiplier == 1.0

  def test_hosting_without_lease_is_pipeline(self, factors, now):
    result = _value(make_period(use_type='HPC_AI_HOSTING'), factors, now)

    assert result.category == ValuationCategory.PIPELINE
    assert result.valuation == pytest.approx(800.0)

  def test_implicit_period(self, factors, now):
    result = _value(None, factors, now)

    assert result.use_period_id is None
    assert result.use_type == 'UNCONTRACTED'
    assert result.valuation == pytest.approx(800.0)

  def test_noi_cap_rate(self, factors, now, leased_period):
    """$10M NOI at default rates with a zero-spread tenant."""
    result = _value(leased_period, factors, now)

    assert result.method == ValuationMethod.NOI_CAP_RATE
    assert result.category == ValuationCategory.HPC_CONTRACTED
    assert result.gross_value == pytest.approx(209.606, abs=0.001)
    assert result.valuation == pytest.approx(209.606, abs=0.001)
    assert result.dcf.base_value == pytest.approx(133.333, abs=0.001)

  def test_tenant_multiplier_applied(self, factors, now):
    period = make_period(use_type='HPC_AI_HOSTING',
                         tenant='Google',
                         lease_value_m=150.0,
                         noi_annual_m=10.0)
    result = _value(period, factors, now)

    assert result.tenant_multiplier == pytest.approx(4.3 / 3.3)
    assert result.valuation == pytest.approx(result.gross_value * 4.3 / 3.3)

  def test_lease_value_fallback(self, factors, now):
    """No NOI available: lease value x combined x tenant."""
    period = make_period(use_type='GPU_CLOUD',
                         tenant='Acme',
                         lease_value_m=150.0,
                         lease_years=5.0)
    result = _value(period, factors, now)

    assert result.method == ValuationMethod.LEASE_VALUE
    assert result.valuation == pytest.approx(150.0 * 4.3 / 5.3)

  def test_stored_zero_noi_falls_back(self, factors, now):
    period = make_period(use_type='HPC_AI_HOSTING',
                         tenant='CoreWeave',
                         lease_value_m=150.0,
                         noi_annual_m=0.0,
                         noi_pct=0.6)
    result = _value(period, factors, now)

    assert result.method == ValuationMethod.LEASE_VALUE
    assert result.valuation == pytest.approx(150.0)

  def test_building_rate_overrides(self, factors, now, leased_period):
    result = _value(leased_period,
                    factors,
                    now,
                    cap_rate_override=0.10,
                    exit_cap_rate_override=0.10,
                    terminal_growth_override=0.0)

    assert result.dcf.cap_rate == 0.10
    assert result.dcf.base_value == pytest.approx(100.0)
    assert result.dcf.terminal_value_end == pytest.approx(100.0)

  def test_factor_overrides(self, now, leased_period):
    factors = resolve_factors({'hpcCapRate': 0.05})
    result = _value(leased_period, factors, now)

    assert result.dcf.base_value == pytest.approx(200.0)

  @pytest.mark.parametrize('use_type', ['COLOCATION', 'MIXED', 'TELECOM'])
  def test_unvalued_types_recorded(self, factors, now, use_type):
    result = _value(make_period(use_type=use_type), factors, now)

    assert result.method == ValuationMethod.NONE
    assert result.valuation == 0.0
    assert result.use_type == use_type

  def test_zero_mw(self, factors, now):
    result = _value(make_period(use_type='BTC_MINING'), factors, now, mw=0.0)

    assert result.valuation == 0.0

  def test_combined_factor_applied(self, factors, now):
    period = make_period(use_type='BTC_MINING')
    result = _value(period, factors, now, probability_override=0.5)

    assert result.combined_factor == pytest.approx(0.5)
    assert result.valuation == pytest.approx(15.0)


class TestComputeNoiAnnual:
  """Tests for annual NOI derivation."""

  def test_stored_noi_wins(self, factors):
    period = make_period(lease_value_m=150.0,
                         lease_years=10.0,
                         noi_pct=0.6,
                         noi_annual_m=12.0)

    assert compute_noi_annual(period, factors) == 12.0

  def test_derived_from_lease(self, factors):
    """150 / 10 years x 60%."""
    period = make_period(lease_value_m=150.0, lease_years=10.0, noi_pct=0.6)

    assert compute_noi_annual(period, factors) == pytest.approx(9.0)

  def test_percentage_noi_pct(self, factors):
    period = make_period(lease_value_m=150.0, lease_years=10.0, noi_pct=60.0)

    assert compute_noi_annual(period, factors) == pytest.approx(9.0)

  def test_missing_lease_years_uses_default(self, factors):
    period = make_period(lease_value_m=150.0, noi_pct=0.6)

    assert compute_noi_annual(period, factors) == pytest.approx(9.0)

  def test_missing_noi_pct(self, factors):
    period = make_period(lease_value_m=150.0, lease_years=10.0)

    assert compute_noi_annual(period, factors) == 0.0

  def test_normalize_noi_pct(self):
    assert normalize_noi_pct(0.85) == 0.85
    assert normalize_noi_pct(85) == pytest.approx(0.85)
    assert normalize_noi_pct(None) == 0.0
