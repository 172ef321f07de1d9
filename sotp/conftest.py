import pandas as pd
import pytest

from sotp.config.resolver import FactorSet
from sotp.config.resolver import resolve_factors
from sotp.domain.types import Building
from sotp.domain.types import Campus
from sotp.domain.types import Company
from sotp.domain.types import Site
from sotp.domain.types import UsePeriod

NOW = pd.Timestamp('2026-01-15')


def make_period(period_id: str = 'up-1', **kwargs) -> UsePeriod:
  """Helper to create a current UsePeriod."""
  return UsePeriod(id=period_id, **kwargs)


def make_building(building_id: str = 'b-1', **kwargs) -> Building:
  """Helper to create an operational Building with neutral multipliers.

  Defaults select the 1.0 bucket of every lookup (operational, PJM, owned,
  Tier III) so tests only have to state what they vary.
  """
  defaults = dict(
      name=f'Building {building_id}',
      gross_mw=100.0,
      it_mw=100.0,
      development_phase='OPERATIONAL',
      grid='PJM',
      ownership_status='Owned',
      datacenter_tier='Tier III',
  )
  defaults.update(kwargs)
  return Building(id=building_id, **defaults)


def make_company(buildings, ticker: str = 'TEST', site_name: str = 'Site A',
                 **kwargs) -> Company:
  """Helper to wrap buildings in a single site/campus company."""
  campus = Campus(id='c-1', name='Campus 1', buildings=tuple(buildings))
  site = Site(id='s-1', name=site_name, campuses=(campus,))
  defaults = dict(name='Test Corp', fd_shares_m=100.0, stock_price=10.0)
  defaults.update(kwargs)
  return Company(ticker=ticker, sites=(site,), **defaults)


def neutral_overrides() -> dict:
  """Building kwargs forcing every overridable multiplier to 1.0."""
  return dict(
      probability_override=1.0,
      size_mult_override=1.0,
      power_auth_mult_override=1.0,
      ownership_mult_override=1.0,
      tier_mult_override=1.0,
      lease_struct_mult_override=1.0,
      time_value_override=1.0,
      regulatory_risk=1.0,
      fidoodle_factor=1.0,
  )


@pytest.fixture
def factors() -> FactorSet:
  """Default factor table without overrides."""
  return resolve_factors()


@pytest.fixture
def now() -> pd.Timestamp:
  """Fixed valuation date."""
  return NOW


@pytest.fixture
def leased_period() -> UsePeriod:
  """Contracted HPC lease with a stored annual NOI of $10M."""
  return make_period(
      'up-lease',
      use_type='HPC_AI_HOSTING',
      tenant='CoreWeave',
      lease_value_m=150.0,
      lease_years=10.0,
      noi_annual_m=10.0,
      lease_start=pd.Timestamp('2025-06-01'),
      lease_structure='NNN',
  )


@pytest.fixture
def sample_company(leased_period) -> Company:
  """Company with one mining, one leased and one pipeline building."""
  mining = make_building('b-mine',
                         use_periods=(make_period('up-mine',
                                                  use_type='BTC_MINING'),),
                         **neutral_overrides())
  leased = make_building('b-lease',
                         use_periods=(leased_period,),
                         **neutral_overrides())
  pipeline = make_building('b-pipe',
                           use_periods=(make_period(
                               'up-pipe', use_type='HPC_AI_PLANNED'),),
                           **neutral_overrides())
  return make_company([mining, leased, pipeline])
