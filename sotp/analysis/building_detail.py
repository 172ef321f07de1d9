'''
Single-building drill-down.

Recomputes one building's valuation and exposes every intermediate: the
capacity allocation, auto/override/final for each multiplier, the
NOI-cap-rate step values and a formula string per step for audit display.

Usage:
  from sotp.analysis.building_detail import build_building_detail

  detail = build_building_detail(record, factors, now=pd.Timestamp.now())
  for step in detail['valuation']['calculation']:
    print(step['label'], step['formula'], step['value'])
'''

from math import isfinite
from typing import Any, Dict, List, Optional

import pandas as pd

from sotp.config.resolver import FactorSet
from sotp.domain.numeric import safe_number
from sotp.domain.types import Building
from sotp.domain.types import BuildingRecord
from sotp.domain.types import PeriodValuation
from sotp.domain.types import UsePeriod
from sotp.domain.types import ValuationCategory
from sotp.domain.types import ValuationMethod
from sotp.engine.company import BuildingValuation
from sotp.engine.company import value_building
from sotp.engine.periods import normalize_noi_pct
from sotp.engine.periods import resolve_lease_rates


def _divide(numerator: float, denominator: float) -> float:
  if not denominator:
    return 0.0
  result = numerator / denominator
  return result if isfinite(result) else 0.0


def _date(value: Any) -> Optional[str]:
  if value is None:
    return None
  ts = pd.Timestamp(value)
  return None if pd.isna(ts) else ts.date().isoformat()


def _building_dict(building: Building) -> Dict[str, Any]:
  return {
      'id': building.id,
      'name': building.name,
      'grossMw': building.gross_mw,
      'itMw': building.it_mw,
      'capacityMw': building.capacity_mw,
      'developmentPhase': building.development_phase,
      'grid': building.grid,
      'ownershipStatus': building.ownership_status,
      'datacenterTier': building.datacenter_tier,
      'energizationDate': _date(building.energization_date),
      'regulatoryRisk': building.regulatory_risk,
      'fidoodleFactor': building.fidoodle_factor,
      'includeInValuation': building.include_in_valuation,
      'capRateOverride': building.cap_rate_override,
      'exitCapRateOverride': building.exit_cap_rate_override,
      'terminalGrowthOverride': building.terminal_growth_override,
  }


def _period_dict(period: UsePeriod) -> Dict[str, Any]:
  return {
      'id': period.id,
      'useType': period.use_type,
      'isCurrent': period.is_current,
      'isSplit': period.is_split,
      'mwAllocation': period.mw_allocation,
      'tenant': period.tenant,
      'leaseValueM': period.lease_value_m,
      'leaseYears': period.lease_years,
      'leaseStart': _date(period.lease_start),
      'noiPct': period.noi_pct,
      'noiAnnualM': period.noi_annual_m,
      'leaseStructure': period.lease_structure,
      'startDate': _date(period.start_date),
  }


def _primary(result: BuildingValuation) -> Optional[PeriodValuation]:
  '''The contracted period when there is one, else the largest by MW.'''
  if not result.periods:
    return None
  for period in result.periods:
    if period.category == ValuationCategory.HPC_CONTRACTED:
      return period
  return max(result.periods, key=lambda p: p.mw)


def _find_period(building: Building,
                 period_id: Optional[str]) -> Optional[UsePeriod]:
  for period in building.use_periods:
    if period.id == period_id:
      return period
  return None


def _lease_details(period: Optional[UsePeriod],
                   valuation: Optional[PeriodValuation]) -> Optional[dict]:
  if period is None or valuation is None or not period.has_lease:
    return None
  lease_value = safe_number(period.lease_value_m)
  years = valuation.lease_years or 0.0
  annual_revenue = _divide(lease_value, max(years, 0.1))
  mw = valuation.mw
  return {
      'tenant': period.tenant,
      'leaseValueM': lease_value,
      'leaseYears': years,
      'leaseStart': _date(period.lease_start),
      'noiPct': normalize_noi_pct(period.noi_pct),
      'noiAnnualM': valuation.noi_annual_m,
      'annualRevenueM': annual_revenue,
      'dollarsPerMwPerYr': _divide(annual_revenue * 1e6, mw),
      'noiPerMwPerYr': _divide(valuation.noi_annual_m * 1e6, mw),
      'leaseStructure': period.lease_structure,
  }


def _factor_details(result: BuildingValuation,
                    valuation: Optional[PeriodValuation]) -> Dict[str, Any]:
  b = result.factors
  details = {
      'phaseProbability': b.phase_probability.to_dict(),
      'regulatoryRisk': {
          'auto': 1.0,
          'override': b.regulatory_risk,
          'final': b.regulatory_risk,
      },
      'sizeMultiplier': b.size.to_dict(),
      'powerAuthority': b.power_authority.to_dict(),
      'ownership': b.ownership.to_dict(),
      'datacenterTier': {
          **b.tier.to_dict(), 'applied': b.apply_tier,
          'effective': b.tier_factor
      },
      'fidoodle': {
          'auto': 1.0,
          'override': b.fidoodle,
          'final': b.fidoodle,
      },
  }
  if valuation is not None:
    p = valuation.factors
    details['leaseStructure'] = p.lease_structure.to_dict()
    details['timeValue'] = p.time_value.to_dict()
    details['tenantCredit'] = {
        'auto': p.tenant.value,
        'override': None,
        'final': p.tenant.value,
        **p.tenant.diag,
    }
  return details


def _step(step: int, label: str, formula: str, value: float) -> dict:
  return {
      'step': step,
      'label': label,
      'formula': formula,
      'value': safe_number(value),
  }


def _calculation_steps(v: Optional[PeriodValuation],
                       factors: FactorSet) -> List[dict]:
  '''Seven labeled steps from annual NOI to the adjusted value.'''
  if v is None:
    return []
  dcf = v.dcf
  if dcf is not None:
    steps = [
        _step(1, 'Annual NOI', f'{dcf.noi_annual:.2f}', dcf.noi_annual),
        _step(2, 'Base value',
              f'{dcf.noi_annual:.2f} / {dcf.cap_rate:.4f}', dcf.base_value),
        _step(3, 'Terminal NOI',
              (f'{dcf.noi_annual:.2f} x (1 + {dcf.terminal_growth_rate:.4f})'
               f'^{dcf.lease_years:g}'), dcf.terminal_noi),
        _step(4, 'Terminal value at lease end',
              (f'{dcf.terminal_noi:.2f} / max({dcf.exit_cap_rate:.4f} - '
               f'{dcf.terminal_growth_rate:.4f}, 0.001)'),
              dcf.terminal_value_end),
        _step(5, 'Terminal value PV',
              (f'{dcf.terminal_value_end:.2f} / (1 + {dcf.discount_rate:.4f})'
               f'^{dcf.lease_years:g} x {dcf.renewal_probability:.2f}'),
              dcf.terminal_value_pv),
        _step(6, 'Gross value',
              f'{dcf.base_value:.2f} + {dcf.terminal_value_pv:.2f}',
              dcf.gross_value),
    ]
  else:
    skipped = f'n/a ({v.method.value})'
    steps = [
        _step(1, 'Annual NOI', skipped, v.noi_annual_m),
        _step(2, 'Base value', skipped, 0.0),
        _step(3, 'Terminal NOI', skipped, 0.0),
        _step(4, 'Terminal value at lease end', skipped, 0.0),
        _step(5, 'Terminal value PV', skipped, 0.0),
        _step(6, 'Gross value', _gross_formula(v, factors), v.gross_value),
    ]
  steps.append(
      _step(7, 'Adjusted value',
            (f'{v.gross_value:.2f} x {v.combined_factor:.4f} x '
             f'{v.tenant_multiplier:.4f}'), v.valuation))
  return steps


def _gross_formula(v: PeriodValuation, factors: FactorSet) -> str:
  if v.method == ValuationMethod.MW_VALUE:
    return f'{v.mw:.1f} MW x {factors.number("mwValueBtcMining", 0.3):.2f}'
  if v.method == ValuationMethod.MW_PIPELINE:
    rate = factors.number('mwValueHpcUncontracted', 8.0)
    return f'{v.mw:.1f} MW x {rate:.2f}'
  if v.method == ValuationMethod.LEASE_VALUE:
    return f'lease value {safe_number(v.lease_value_m):.2f}'
  return '0'


def build_building_detail(
    record: BuildingRecord,
    factors: FactorSet,
    now: Optional[pd.Timestamp] = None,
) -> Dict[str, Any]:
  '''
  Recompute one building with every intermediate exposed.

  Args:
    record: Building with its company/site/campus context
    factors: Effective factors
    now: Valuation date for the time-value discount

  Returns:
    Detail dict: building, site, campus, usePeriods, capacityAllocation,
    leaseDetails, factorDetails, combinedFactor, valuation (inputs,
    calculation, results), globalFactors, periodValuations
  '''
  building = record.building
  result = value_building(building, record.site.total_gross_mw, factors, now)
  primary = _primary(result)
  primary_period = (_find_period(building, primary.use_period_id)
                    if primary is not None else None)
  dcf = primary.dcf if primary is not None else None
  factor_details = _factor_details(result, primary)
  for key, rate in resolve_lease_rates(building, factors).items():
    factor_details[key] = rate.to_dict()

  inputs = {
      'mw': primary.mw if primary is not None else 0.0,
      'method': primary.method.value if primary is not None else None,
      'category': primary.category.value if primary is not None else None,
      'noiAnnualM': primary.noi_annual_m if primary is not None else 0.0,
      'leaseValueM': primary.lease_value_m if primary is not None else None,
      'capRate': dcf.cap_rate if dcf else factors.number('hpcCapRate', 0.075),
      'exitCapRate': (dcf.exit_cap_rate if dcf else factors.number(
          'hpcExitCapRate', 0.08)),
      'terminalGrowthRate': (dcf.terminal_growth_rate if dcf else
                             factors.number('terminalGrowthRate', 0.025)),
      'discountRate': factors.number('discountRate', 0.10),
      'leaseYears': primary.lease_years if primary is not None else None,
      'renewalProbability': factors.number('leaseRenewalProbability', 0.85),
  }
  results = {
      'grossValue': primary.gross_value if primary is not None else 0.0,
      'combinedFactor': primary.combined_factor if primary is not None else 0.0,
      'tenantMultiplier': (primary.tenant_multiplier
                           if primary is not None else 1.0),
      'adjustedValue': primary.valuation if primary is not None else 0.0,
      'buildingTotalValue': safe_number(result.total_value),
  }

  return {
      'building': _building_dict(building),
      'site': {
          'id': record.site.id,
          'name': record.site.name,
          'totalGrossMw': result.site_total_mw,
      },
      'campus': {
          'id': record.campus.id,
          'name': record.campus.name
      },
      'company': {
          'ticker': record.company.ticker,
          'name': record.company.name
      },
      'usePeriods': [_period_dict(p) for p in building.use_periods],
      'capacityAllocation': result.allocation.to_dict(),
      'leaseDetails': _lease_details(primary_period, primary),
      'factorDetails': factor_details,
      'combinedFactor': primary.combined_factor if primary is not None else 0.0,
      'valuation': {
          'inputs': inputs,
          'calculation': _calculation_steps(primary, factors),
          'results': results,
      },
      'globalFactors': factors.to_dict(),
      'periodValuations': [p.to_dict() for p in result.periods],
  }
