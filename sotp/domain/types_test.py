import pytest

from sotp.domain.types import Building
from sotp.domain.types import BuildingNotFoundError
from sotp.domain.types import CompanyValuation
from sotp.domain.types import PolicyOutput
from sotp.domain.types import Resolved
from sotp.domain.types import UsePeriod
from sotp.domain.types import UseType


def _valuation(**kwargs) -> CompanyValuation:
  defaults = dict(
      ticker='TEST',
      name='Test Corp',
      stock_price=None,
      fd_shares_m=None,
      net_liquid=0.0,
      total_mw=0.0,
      ev_mining=0.0,
      ev_hpc_contracted=0.0,
      ev_hpc_pipeline=0.0,
      total_lease_value_m=0.0,
  )
  defaults.update(kwargs)
  return CompanyValuation(**defaults)


class TestUseType:
  """Tests for UseType.parse."""

  def test_blank_is_uncontracted(self):
    assert UseType.parse(None) == UseType.UNCONTRACTED
    assert UseType.parse('') == UseType.UNCONTRACTED
    assert UseType.parse('   ') == UseType.UNCONTRACTED

  def test_case_insensitive(self):
    assert UseType.parse('gpu_cloud') == UseType.GPU_CLOUD

  def test_unknown_is_none(self):
    assert UseType.parse('TELECOM') is None


class TestResolved:
  """Tests for auto/override resolution."""

  def test_auto_when_not_overridden(self):
    resolved = Resolved(auto=0.9)

    assert resolved.final == 0.9
    assert not resolved.is_overridden

  def test_override_replaces_auto(self):
    resolved = Resolved(auto=0.9, override=0.5)

    assert resolved.final == 0.5
    assert resolved.is_overridden

  def test_zero_override_wins(self):
    """A stored override of 0 is honored, not treated as unset."""
    assert Resolved(auto=0.9, override=0.0).final == 0.0

  def test_from_policy_copies_diag(self):
    output = PolicyOutput(value=1.05, diag={'bucket': 'ERCOT'})
    resolved = Resolved.from_policy(output, None)

    assert resolved.to_dict() == {
        'auto': 1.05,
        'override': None,
        'final': 1.05,
        'bucket': 'ERCOT',
    }


class TestBuilding:

  def test_capacity_prefers_it_mw(self):
    assert Building(id='b', gross_mw=120.0, it_mw=100.0).capacity_mw == 100.0

  def test_capacity_falls_back_to_gross(self):
    assert Building(id='b', gross_mw=120.0).capacity_mw == 120.0
    assert Building(id='b', gross_mw=120.0, it_mw=0.0).capacity_mw == 120.0

  def test_current_periods(self):
    building = Building(id='b',
                        use_periods=(UsePeriod(id='old', is_current=False),
                                     UsePeriod(id='new')))

    assert [p.id for p in building.current_periods] == ['new']

  def test_has_lease_needs_tenant_and_value(self):
    assert UsePeriod(id='p', tenant='Google', lease_value_m=10.0).has_lease
    assert not UsePeriod(id='p', tenant='Google').has_lease
    assert not UsePeriod(id='p', tenant=' ', lease_value_m=10.0).has_lease


class TestCompanyValuation:
  """Tests for the company roll-up record."""

  def test_fair_value_per_share(self):
    valuation = _valuation(net_liquid=10.0, fd_shares_m=5.0)

    assert valuation.fair_value_per_share == pytest.approx(2.0)

  @pytest.mark.parametrize('shares', [None, 0.0, -1.0, float('nan')])
  def test_fair_value_none_without_shares(self, shares):
    valuation = _valuation(net_liquid=10.0, fd_shares_m=shares)

    assert valuation.fair_value_per_share is None
    assert valuation.to_dict()['fairValuePerShare'] is None

  def test_total_value(self):
    valuation = _valuation(net_liquid=5.0,
                           ev_mining=10.0,
                           ev_hpc_contracted=20.0,
                           ev_hpc_pipeline=30.0)

    assert valuation.total_ev == 60.0
    assert valuation.total_value_m == 65.0

  def test_to_dict_rounding(self):
    """Whole $M for EV, one decimal for net liquid, two per share."""
    valuation = _valuation(net_liquid=12.34,
                           ev_mining=12.5,
                           fd_shares_m=10.0,
                           stock_price=1.0,
                           total_lease_value_m=150.04)
    result = valuation.to_dict()

    assert result['evMining'] == 13.0
    assert result['netLiquid'] == pytest.approx(12.3)
    assert result['totalValueM'] == 25.0
    assert result['fairValuePerShare'] == pytest.approx(2.48)
    assert result['totalLeaseValueM'] == pytest.approx(150.0)

  def test_upside(self):
    valuation = _valuation(net_liquid=10.0, fd_shares_m=5.0, stock_price=1.6)

    assert valuation.to_dict()['upsidePct'] == pytest.approx(25.0)

  def test_upside_none_without_price(self):
    valuation = _valuation(net_liquid=10.0, fd_shares_m=5.0)

    assert valuation.to_dict()['upsidePct'] is None


class TestBuildingNotFoundError:

  def test_is_lookup_error(self):
    error = BuildingNotFoundError('b-9')

    assert isinstance(error, LookupError)
    assert error.building_id == 'b-9'
    assert 'b-9' in str(error)
