'''
SOTP roll-up.

A company's value is the sum of three EV buckets built from its buildings
(mining, contracted HPC, HPC pipeline) plus the ticker-keyed supplementary
tables:
  - net liquid assets: cash + BTC + ETH - debt
  - mining-table EV: self-mining EBITDA x multiple + hosted MW x $/MW
'''

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from sotp.config.resolver import FactorSet
from sotp.domain.numeric import safe_number
from sotp.domain.types import Building
from sotp.domain.types import BuildingFactors
from sotp.domain.types import Campus
from sotp.domain.types import Company
from sotp.domain.types import CompanyValuation
from sotp.domain.types import MiningValuation
from sotp.domain.types import NetLiquidAssets
from sotp.domain.types import PeriodValuation
from sotp.domain.types import PolicyOutput
from sotp.domain.types import Site
from sotp.domain.types import ValuationCategory
from sotp.engine.allocation import CapacityAllocation
from sotp.engine.allocation import resolve_allocation
from sotp.engine.building_factors import compute_building_factors
from sotp.engine.building_factors import compute_period_factors
from sotp.engine.periods import value_use_period

logger = logging.getLogger(__name__)

HOURS_PER_YEAR = 8760
DAYS_PER_YEAR = 365


def compute_net_liquid(net_liquid: Optional[NetLiquidAssets],
                       factors: FactorSet) -> PolicyOutput[float]:
  '''
  Net liquid assets in $M.

  Args:
    net_liquid: Holdings record for the ticker, or None
    factors: Effective factors (btcPrice, ethPrice in USD)

  Returns:
    PolicyOutput with the net figure; diag is the breakdown
    (None when the ticker has no record)
  '''
  if net_liquid is None:
    return PolicyOutput(value=0.0, diag={})

  cash = safe_number(net_liquid.cash_m)
  btc_count = safe_number(net_liquid.btc_count)
  eth_count = safe_number(net_liquid.eth_count)
  debt = safe_number(net_liquid.total_debt_m)
  btc_value = btc_count * factors.number('btcPrice', 0.0) / 1e6
  eth_value = eth_count * factors.number('ethPrice', 0.0) / 1e6

  return PolicyOutput(value=cash + btc_value + eth_value - debt,
                      diag={
                          'cashM': cash,
                          'btcCount': btc_count,
                          'btcValueM': btc_value,
                          'ethCount': eth_count,
                          'ethValueM': eth_value,
                          'totalDebtM': debt,
                      })


def compute_mining_ev(mining: Optional[MiningValuation],
                      factors: FactorSet) -> PolicyOutput[float]:
  '''
  Mining-table EV in $M: self-mining EBITDA x multiple plus hosted MW.

  Hashrate (EH/s) x efficiency (J/TH) is the fleet draw in MW.
  '''
  if mining is None:
    return PolicyOutput(value=0.0, diag={})

  hashrate = safe_number(mining.hashrate_eh)
  efficiency = safe_number(mining.efficiency_jth) or factors.number(
      'defaultEfficiencyJth', 20.0)
  power_cost = safe_number(mining.power_cost_kwh) or factors.number(
      'defaultPowerCostKwh', 0.04)
  hosted_mw = safe_number(mining.hosted_mw)
  multiple = factors.number('ebitdaMultiple', 6.0)

  annual_rev = (hashrate * factors.number('dailyRevPerEh', 0.0) *
                DAYS_PER_YEAR / 1e6)
  annual_power_cost = (hashrate * efficiency * HOURS_PER_YEAR * power_cost /
                       1000)
  pool_fees = annual_rev * factors.number('poolFeePct', 0.0)
  ebitda = annual_rev - annual_power_cost - pool_fees
  self_mining_ev = max(0.0, ebitda * multiple)
  hosted_ev = hosted_mw * factors.number('mwValueBtcMining', 0.3)

  return PolicyOutput(value=self_mining_ev + hosted_ev,
                      diag={
                          'hashrateEh': hashrate,
                          'efficiencyJth': efficiency,
                          'powerCostKwh': power_cost,
                          'hostedMw': hosted_mw,
                          'annualRevM': annual_rev,
                          'annualPowerCostM': annual_power_cost,
                          'poolFeesM': pool_fees,
                          'ebitdaM': ebitda,
                          'ebitdaMultiple': multiple,
                          'selfMiningEvM': self_mining_ev,
                          'hostedEvM': hosted_ev,
                      })


@dataclass(frozen=True)
class BuildingValuation:
  '''All valuation intermediates of one building.'''
  building: Building
  site_total_mw: float
  allocation: CapacityAllocation
  factors: BuildingFactors
  periods: List[PeriodValuation]

  @property
  def total_value(self) -> float:
    return sum(p.valuation for p in self.periods)


def value_building(
    building: Building,
    site_total_mw: float,
    factors: FactorSet,
    now: Optional[pd.Timestamp] = None,
) -> BuildingValuation:
  '''
  Allocate a building's capacity and value each current use period.

  Args:
    building: Building with use periods
    site_total_mw: Aggregate gross MW of its site (size multiplier)
    factors: Effective factors
    now: Valuation date for the time-value discount

  Returns:
    BuildingValuation with one PeriodValuation per allocated period
  '''
  allocation = resolve_allocation(building)
  building_factors = compute_building_factors(building, site_total_mw,
                                              factors)
  periods = []
  for entry in allocation.periods:
    period_factors = compute_period_factors(building, building_factors,
                                            entry.period, factors, now)
    periods.append(
        value_use_period(building, entry.period, entry.mw, period_factors,
                         factors))
  return BuildingValuation(building=building,
                           site_total_mw=site_total_mw,
                           allocation=allocation,
                           factors=building_factors,
                           periods=periods)


def _site_row(site: Site, campus: Campus, result: BuildingValuation,
              period: PeriodValuation) -> Dict[str, Any]:
  building = result.building
  energization = building.energization_date
  return {
      'siteName': site.name,
      'campusName': campus.name,
      'buildingId': building.id,
      'buildingName': building.name,
      'phase': building.development_phase,
      'category': period.category.value,
      'useType': period.use_type,
      'tenant': period.tenant,
      'mw': period.mw,
      'grossValue': period.gross_value,
      'valuation': period.valuation,
      'method': period.method.value,
      'noiAnnualM': period.noi_annual_m,
      'energizationDate': (pd.Timestamp(energization).date().isoformat()
                           if energization is not None else None),
      **period.factors.to_dict(),
      'tenantMult': period.tenant_multiplier,
  }


def value_company(
    company: Company,
    factors: FactorSet,
    net_liquid: Optional[NetLiquidAssets] = None,
    mining: Optional[MiningValuation] = None,
    now: Optional[pd.Timestamp] = None,
) -> CompanyValuation:
  '''
  Roll a company's buildings and supplementary tables up into one SOTP.

  Buildings flagged include_in_valuation=False are skipped entirely.
  '''
  net = compute_net_liquid(net_liquid, factors)
  mining_ev = compute_mining_ev(mining, factors)

  valuation = CompanyValuation(
      ticker=company.ticker,
      name=company.name,
      stock_price=company.stock_price,
      fd_shares_m=company.fd_shares_m,
      net_liquid=net.value,
      total_mw=0.0,
      ev_mining=mining_ev.value,
      ev_hpc_contracted=0.0,
      ev_hpc_pipeline=0.0,
      total_lease_value_m=0.0,
      net_liquid_breakdown=net.diag or None,
      mining_breakdown=mining_ev.diag or None,
  )

  for site in company.sites:
    site_total_mw = site.total_gross_mw
    for campus in site.campuses:
      for building in campus.buildings:
        if not building.include_in_valuation:
          logger.debug('%s: skipping excluded building %s', company.ticker,
                       building.id)
          continue
        result = value_building(building, site_total_mw, factors, now)
        valuation.total_mw += result.allocation.total_it_mw
        for period in result.periods:
          _accumulate(valuation, period)
          valuation.period_valuations.append(period)
          if period.valuation != 0:
            valuation.hpc_sites.append(
                _site_row(site, campus, result, period))

  logger.debug('%s: EV mining %.1f, contracted %.1f, pipeline %.1f',
               company.ticker, valuation.ev_mining,
               valuation.ev_hpc_contracted, valuation.ev_hpc_pipeline)
  return valuation


def _accumulate(valuation: CompanyValuation, period: PeriodValuation) -> None:
  if period.category == ValuationCategory.MINING:
    valuation.ev_mining += period.valuation
    valuation.mw_mining += period.mw
  elif period.category == ValuationCategory.HPC_CONTRACTED:
    valuation.ev_hpc_contracted += period.valuation
    valuation.mw_hpc_contracted += period.mw
    valuation.total_lease_value_m += safe_number(period.lease_value_m)
  elif period.category == ValuationCategory.PIPELINE:
    valuation.ev_hpc_pipeline += period.valuation
    valuation.mw_hpc_pipeline += period.mw
