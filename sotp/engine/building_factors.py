'''
Per-building factor chain.

The building-level multipliers (phase, regulatory risk, site size, power
authority, ownership, tier, fidoodle) are computed once per building and
shared by its use periods; lease structure, time value and tenant credit
are layered on per period.
'''

import logging
from typing import Optional

import pandas as pd

from sotp.config.resolver import FactorSet
from sotp.domain.numeric import safe_number
from sotp.domain.types import Building
from sotp.domain.types import BuildingFactors
from sotp.domain.types import PeriodFactors
from sotp.domain.types import UsePeriod
from sotp.policies.context import lease_structure_multiplier
from sotp.policies.context import ownership_multiplier
from sotp.policies.context import power_authority_multiplier
from sotp.policies.context import size_multiplier
from sotp.policies.context import tier_multiplier
from sotp.policies.phase import resolve_phase_probability
from sotp.policies.tenant import TenantCredit
from sotp.policies.time_value import resolve_time_value

logger = logging.getLogger(__name__)


def compute_building_factors(building: Building, site_total_mw: float,
                             factors: FactorSet) -> BuildingFactors:
  '''
  Resolve the building-level multipliers.

  Args:
    building: Building entity (carries the stored overrides)
    site_total_mw: Aggregate gross MW of the building's site
    factors: Effective factors

  Returns:
    BuildingFactors with auto/override/final for each multiplier
  '''
  return BuildingFactors(
      phase=building.development_phase,
      phase_probability=resolve_phase_probability(
          building.development_phase, building.probability_override, factors),
      regulatory_risk=safe_number(building.regulatory_risk, 1.0),
      size=size_multiplier(site_total_mw, factors,
                           building.size_mult_override),
      power_authority=power_authority_multiplier(
          building.grid, factors, building.power_auth_mult_override),
      ownership=ownership_multiplier(building.ownership_status, factors,
                                     building.ownership_mult_override),
      tier=tier_multiplier(building.datacenter_tier, factors,
                           building.tier_mult_override),
      fidoodle=safe_number(building.fidoodle_factor, 1.0),
      apply_tier=factors.flag('applyTierMult', True),
  )


def compute_period_factors(
    building: Building,
    building_factors: BuildingFactors,
    period: Optional[UsePeriod],
    factors: FactorSet,
    now: Optional[pd.Timestamp] = None,
) -> PeriodFactors:
  '''
  Layer the use-period multipliers on top of the building chain.

  The implicit period of a building without current use periods (period
  None) has no lease structure, no tenant and discounts from energization.
  '''
  lease_structure = period.lease_structure if period is not None else None
  lease_start = period.lease_start if period is not None else None
  tenant = period.tenant if period is not None else None

  period_factors = PeriodFactors(
      building=building_factors,
      lease_structure=lease_structure_multiplier(
          lease_structure, factors, building.lease_struct_mult_override),
      time_value=resolve_time_value(lease_start, building.energization_date,
                                    factors, now,
                                    building.time_value_override),
      tenant=TenantCredit().compute(tenant, factors),
  )
  logger.debug('Building %s period %s: combined %.4f, tenant %.4f',
               building.id, period.id if period is not None else '-',
               period_factors.combined_factor, period_factors.tenant.value)
  return period_factors
