'''
Use-period categorization and valuation.

Dispatch on the period's use type:

  BTC_MINING, BTC_MINING_HOSTING
      MW_VALUE      mw * mwValueBtcMining * combined
  HPC_AI_HOSTING, GPU_CLOUD with an active lease (tenant + lease value)
      NOI_CAP_RATE  dcf_gross(noi) * combined * tenant       (noi > 0)
      LEASE_VALUE   leaseValueM * combined * tenant          (noi <= 0)
  HPC_AI_HOSTING, GPU_CLOUD without a lease, HPC_AI_PLANNED,
  UNCONTRACTED, UNCONTRACTED_ROFR
      MW_PIPELINE   mw * mwValueHpcUncontracted * combined
  anything else (COLOCATION, MIXED, unknown labels)
      NONE          0, recorded for audit
'''

import logging
from typing import Dict, Optional

from sotp.config.resolver import FactorSet
from sotp.domain.numeric import optional_number
from sotp.domain.numeric import safe_number
from sotp.domain.types import Building
from sotp.domain.types import DcfBreakdown
from sotp.domain.types import PeriodFactors
from sotp.domain.types import PeriodValuation
from sotp.domain.types import Resolved
from sotp.domain.types import UsePeriod
from sotp.domain.types import UseType
from sotp.domain.types import ValuationCategory
from sotp.domain.types import ValuationMethod
from sotp.engine.dcf import compute_noi_cap_rate_value
from sotp.policies.time_value import to_timestamp

logger = logging.getLogger(__name__)

MINING_TYPES = frozenset({UseType.BTC_MINING, UseType.BTC_MINING_HOSTING})
LEASED_HPC_TYPES = frozenset({UseType.HPC_AI_HOSTING, UseType.GPU_CLOUD})
PIPELINE_TYPES = frozenset({
    UseType.HPC_AI_PLANNED,
    UseType.UNCONTRACTED,
    UseType.UNCONTRACTED_ROFR,
})

MIN_LEASE_YEARS = 0.1
DEFAULT_LEASE_YEARS = 10.0


def categorize(period: Optional[UsePeriod]) -> ValuationCategory:
  '''EV bucket for a use period (None is the implicit uncontracted period).'''
  use_type = period.parsed_use_type if period is not None else (
      UseType.UNCONTRACTED)
  if use_type in MINING_TYPES:
    return ValuationCategory.MINING
  if use_type in LEASED_HPC_TYPES:
    if period is not None and period.has_lease:
      return ValuationCategory.HPC_CONTRACTED
    return ValuationCategory.PIPELINE
  if use_type in PIPELINE_TYPES:
    return ValuationCategory.PIPELINE
  return ValuationCategory.NONE


def normalize_noi_pct(noi_pct) -> float:
  '''NOI margin as a fraction; values above 1 are read as percentages.'''
  pct = safe_number(noi_pct)
  return pct / 100.0 if pct > 1 else pct


def lease_term_years(period: UsePeriod, factors: FactorSet) -> float:
  '''Stored lease term, else the defaultLeaseYears factor.'''
  years = safe_number(period.lease_years)
  if years <= 0:
    years = factors.number('defaultLeaseYears', DEFAULT_LEASE_YEARS)
  return years


def compute_noi_annual(period: UsePeriod, factors: FactorSet) -> float:
  '''
  Annual NOI of a leased period, $M.

  Stored noi_annual_m wins; otherwise derived as
  (lease_value_m / max(lease_years, 0.1)) * noi_pct.
  '''
  stored = optional_number(period.noi_annual_m)
  if stored is not None:
    return stored
  lease_value = safe_number(period.lease_value_m)
  years = max(lease_term_years(period, factors), MIN_LEASE_YEARS)
  return safe_number(lease_value / years * normalize_noi_pct(period.noi_pct))


def resolve_lease_rates(building: Building,
                        factors: FactorSet) -> Dict[str, Resolved[float]]:
  '''Cap rate, exit cap rate and terminal growth: factor default vs override.'''
  return {
      'capRate':
          Resolved(auto=factors.number('hpcCapRate', 0.075),
                   override=optional_number(building.cap_rate_override)),
      'exitCapRate':
          Resolved(auto=factors.number('hpcExitCapRate', 0.08),
                   override=optional_number(building.exit_cap_rate_override)),
      'terminalGrowthRate':
          Resolved(auto=factors.number('terminalGrowthRate', 0.025),
                   override=optional_number(building.terminal_growth_override)),
  }


def compute_lease_dcf(building: Building, noi_annual: float,
                      lease_years: float, factors: FactorSet) -> DcfBreakdown:
  '''NOI-cap-rate value with the building's rate overrides applied.'''
  rates = resolve_lease_rates(building, factors)
  return compute_noi_cap_rate_value(
      noi_annual=noi_annual,
      cap_rate=rates['capRate'].final,
      exit_cap_rate=rates['exitCapRate'].final,
      terminal_growth_rate=rates['terminalGrowthRate'].final,
      discount_rate=factors.number('discountRate', 0.10),
      lease_years=lease_years,
      renewal_probability=factors.number('leaseRenewalProbability', 0.85),
  )


def value_use_period(
    building: Building,
    period: Optional[UsePeriod],
    mw: float,
    period_factors: PeriodFactors,
    factors: FactorSet,
) -> PeriodValuation:
  '''
  Value one use period.

  Args:
    building: Owning building (rate overrides)
    period: Use period, or None for a building with no current period
    mw: Capacity allocated to this period
    period_factors: Resolved factor chain for this period
    factors: Effective factors

  Returns:
    PeriodValuation with method, gross value and adjusted valuation
  '''
  mw = safe_number(mw)
  combined = safe_number(period_factors.combined_factor)
  tenant_mult = safe_number(period_factors.tenant.value, 1.0)
  category = categorize(period)
  use_type = period.parsed_use_type if period is not None else (
      UseType.UNCONTRACTED)
  raw_use_type = (use_type.value if use_type is not None else
                  str(period.use_type))

  method = ValuationMethod.NONE
  gross = 0.0
  valuation = 0.0
  noi_annual = 0.0
  lease_years = None
  dcf = None
  applied_tenant = 1.0

  if category == ValuationCategory.MINING:
    method = ValuationMethod.MW_VALUE
    gross = mw * factors.number('mwValueBtcMining', 0.3)
    valuation = gross * combined
  elif category == ValuationCategory.HPC_CONTRACTED:
    noi_annual = compute_noi_annual(period, factors)
    lease_years = lease_term_years(period, factors)
    applied_tenant = tenant_mult
    if noi_annual > 0:
      method = ValuationMethod.NOI_CAP_RATE
      dcf = compute_lease_dcf(building, noi_annual, lease_years, factors)
      gross = dcf.gross_value
    else:
      method = ValuationMethod.LEASE_VALUE
      gross = safe_number(period.lease_value_m)
    valuation = gross * combined * tenant_mult
  elif category == ValuationCategory.PIPELINE:
    method = ValuationMethod.MW_PIPELINE
    gross = mw * factors.number('mwValueHpcUncontracted', 8.0)
    valuation = gross * combined
  else:
    logger.debug('Building %s period %s: use type %r not valued', building.id,
                 period.id if period is not None else '-', raw_use_type)

  if valuation != safe_number(valuation):
    logger.warning('Building %s: non-finite valuation coerced to 0',
                   building.id)
  return PeriodValuation(
      use_period_id=period.id if period is not None else None,
      building_id=building.id,
      use_type=raw_use_type,
      category=category,
      method=method,
      mw=mw,
      gross_value=safe_number(gross),
      combined_factor=combined,
      tenant_multiplier=applied_tenant,
      valuation=safe_number(valuation),
      factors=period_factors,
      tenant=period.tenant if period is not None else None,
      noi_annual_m=noi_annual,
      lease_value_m=(optional_number(period.lease_value_m)
                     if period is not None else None),
      lease_years=lease_years,
      lease_start=(to_timestamp(period.lease_start)
                   if period is not None else None),
      dcf=dcf,
  )
