import pytest

from sotp.analysis.building_detail import build_building_detail
from sotp.conftest import make_building
from sotp.conftest import make_company
from sotp.conftest import make_period
from sotp.conftest import neutral_overrides
from sotp.domain.types import BuildingRecord


def _record(building) -> BuildingRecord:
  company = make_company([building])
  site = company.sites[0]
  return BuildingRecord(company=company,
                        site=site,
                        campus=site.campuses[0],
                        building=building)


class TestBuildBuildingDetail:
  """Tests for the single-building drill-down."""

  def test_leased_building(self, factors, now, leased_period):
    building = make_building('b-lease',
                             use_periods=(leased_period,),
                             **neutral_overrides())
    detail = build_building_detail(_record(building), factors, now)

    assert detail['building']['id'] == 'b-lease'
    assert detail['site']['name'] == 'Site A'
    assert detail['campus']['name'] == 'Campus 1'
    assert detail['capacityAllocation']['kind'] == 'SINGLE_FULL'
    assert detail['combinedFactor'] == pytest.approx(1.0)
    assert detail['valuation']['inputs']['method'] == 'NOI_CAP_RATE'
    assert detail['valuation']['results']['adjustedValue'] == pytest.approx(
        209.606, abs=0.001)

  def test_seven_steps(self, factors, now, leased_period):
    building = make_building(use_periods=(leased_period,),
                             **neutral_overrides())
    steps = build_building_detail(_record(building), factors,
                                  now)['valuation']['calculation']

    assert [s['step'] for s in steps] == [1, 2, 3, 4, 5, 6, 7]
    assert steps[0]['value'] == pytest.approx(10.0)
    assert steps[1]['value'] == pytest.approx(133.333, abs=0.001)
    assert steps[1]['formula'] == '10.00 / 0.0750'
    assert steps[5]['value'] == pytest.approx(209.606, abs=0.001)
    assert steps[6]['value'] == pytest.approx(209.606, abs=0.001)

  def test_lease_details(self, factors, now, leased_period):
    """$150M over 10 years on 100 MW."""
    building = make_building(use_periods=(leased_period,),
                             **neutral_overrides())
    lease = build_building_detail(_record(building), factors,
                                  now)['leaseDetails']

    assert lease['tenant'] == 'CoreWeave'
    assert lease['annualRevenueM'] == pytest.approx(15.0)
    assert lease['dollarsPerMwPerYr'] == pytest.approx(150000.0)
    assert lease['noiPerMwPerYr'] == pytest.approx(100000.0)

  def test_factor_details_show_auto_and_override(self, factors, now):
    building = make_building(grid='ERCOT',
                             power_auth_mult_override=0.9,
                             use_periods=(make_period(use_type='BTC_MINING'),))
    details = build_building_detail(_record(building), factors,
                                    now)['factorDetails']

    assert details['powerAuthority']['auto'] == 1.05
    assert details['powerAuthority']['override'] == 0.9
    assert details['powerAuthority']['final'] == 0.9
    assert details['phaseProbability']['override'] is None
    assert details['tenantCredit']['final'] == 1.0
    assert 'timeValue' in details

  def test_lease_rates_show_auto_and_override(self, factors, now,
                                              leased_period):
    building = make_building(use_periods=(leased_period,),
                             cap_rate_override=0.065,
                             **neutral_overrides())
    detail = build_building_detail(_record(building), factors, now)
    details = detail['factorDetails']

    assert details['capRate'] == {
        'auto': 0.075,
        'override': 0.065,
        'final': 0.065
    }
    assert details['exitCapRate']['override'] is None
    assert details['exitCapRate']['final'] == 0.08
    assert details['terminalGrowthRate']['final'] == 0.025
    assert detail['valuation']['inputs']['capRate'] == 0.065

  def test_pipeline_building(self, factors, now):
    building = make_building(use_periods=(make_period(
        use_type='UNCONTRACTED'),),
                             **neutral_overrides())
    detail = build_building_detail(_record(building), factors, now)
    steps = detail['valuation']['calculation']

    assert len(steps) == 7
    assert steps[1]['formula'] == 'n/a (MW_PIPELINE)'
    assert steps[5]['formula'] == '100.0 MW x 8.00'
    assert steps[6]['value'] == pytest.approx(800.0)
    assert detail['leaseDetails'] is None

  def test_split_building(self, factors, now):
    building = make_building(use_periods=(
        make_period('mine', use_type='BTC_MINING', is_split=True,
                    mw_allocation=40.0),
        make_period('pipe', use_type='HPC_AI_PLANNED', is_split=True),
    ),
                             **neutral_overrides())
    detail = build_building_detail(_record(building), factors, now)

    assert detail['capacityAllocation']['kind'] == 'SPLIT_WITH_REMAINDER'
    assert len(detail['periodValuations']) == 2
    assert len(detail['usePeriods']) == 2
    assert detail['valuation']['results'][
        'buildingTotalValue'] == pytest.approx(40.0 * 0.3 + 60.0 * 8.0)

  def test_global_factors(self, factors, now):
    building = make_building()
    detail = build_building_detail(_record(building), factors, now)

    assert detail['globalFactors']['btcPrice'] == 97000.0
    assert detail['periodValuations'][0]['usePeriodId'] is None
