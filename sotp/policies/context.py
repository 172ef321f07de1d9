'''
Risk and context multipliers.

Five independent lookups adjust a building's value for where it sits and
how it is held:
  - power authority (grid operator / jurisdiction)
  - ownership (owned vs. leased land)
  - site size (aggregate gross MW of the site)
  - datacenter tier
  - lease structure (NNN vs. gross)

Each lookup yields an auto value; the building's stored override, when
set, replaces it (see resolve_multiplier).
'''

from typing import Optional, Sequence, Tuple

from sotp.config.resolver import FactorSet
from sotp.domain.numeric import optional_number
from sotp.domain.numeric import safe_number
from sotp.domain.types import PolicyOutput
from sotp.domain.types import Resolved
from sotp.policies.rules import rule
from sotp.policies.rules import SubstringRuleSet

POWER_AUTHORITY = SubstringRuleSet(
    name='power_authority',
    rules=[
        rule('ERCOT', 'paErcot', 'ercot'),
        rule('PJM', 'paPjm', 'pjm'),
        rule('MISO', 'paMiso', 'miso'),
        rule('NYISO', 'paNyiso', 'nyiso'),
        rule('CAISO', 'paCaiso', 'caiso'),
        rule('Canada', 'paCanada', 'canada', 'hydro'),
        rule('Norway', 'paNorway', 'norway'),
        rule('UAE', 'paUae', 'uae'),
        rule('Bhutan', 'paBhutan', 'bhutan'),
        rule('Paraguay', 'paParaguay', 'paraguay'),
        rule('Ethiopia', 'paEthiopia', 'ethiopia'),
    ],
    default=rule('Other', 'paOther'),
)

OWNERSHIP = SubstringRuleSet(
    name='ownership',
    rules=[
        rule('Owned', 'ownedMult', 'own', 'fee'),
        rule('Long-term lease', 'longtermLeaseMult', 'long', 'ground'),
        rule('Short-term lease', 'shorttermLeaseMult', 'short', 'lease'),
    ],
    default=rule('Owned', 'ownedMult'),
)

DATACENTER_TIER = SubstringRuleSet(
    name='datacenter_tier',
    rules=[
        rule('Tier IV', 'tierIvMult', 'iv', '4'),
        rule('Tier III', 'tierIiiMult', 'iii', '3'),
        rule('Tier II', 'tierIiMult', 'ii', '2'),
    ],
    default=rule('Tier I', 'tierIMult'),
    missing=rule('Tier III', 'tierIiiMult'),
)

LEASE_STRUCTURE = SubstringRuleSet(
    name='lease_structure',
    rules=[
        rule('NNN', 'nnnMult', 'nnn', 'triple'),
        rule('Modified gross', 'modifiedGrossMult', 'modified'),
        rule('Gross', 'grossMult', 'gross'),
    ],
    default=rule('NNN', 'nnnMult'),
)

# (minimum site MW, factor key), largest first.
SIZE_TIERS: Tuple[Tuple[float, str], ...] = (
    (500.0, 'sizeGte500'),
    (250.0, 'size250to499'),
    (100.0, 'size100to249'),
)
SMALL_SITE_KEY = 'sizeLt100'


class SiteSizeMultiplier:
  '''
  Scale multiplier from the aggregate gross MW of a building's site.

  Buckets: >=500, 250-499, 100-249, <100 MW.
  '''

  def __init__(self, tiers: Sequence[Tuple[float, str]] = SIZE_TIERS,
               small_key: str = SMALL_SITE_KEY):
    self.tiers = tuple(tiers)
    self.small_key = small_key

  def compute(self, site_total_mw: float,
              factors: FactorSet) -> PolicyOutput[float]:
    site_mw = safe_number(site_total_mw)
    key = self.small_key
    for threshold, tier_key in self.tiers:
      if site_mw >= threshold:
        key = tier_key
        break
    return PolicyOutput(value=factors.number(key, 1.0),
                        diag={
                            'rule_set': 'site_size',
                            'siteTotalMw': site_mw,
                            'factor_key': key,
                        })


def resolve_multiplier(output: PolicyOutput[float],
                       override: Optional[float]) -> Resolved[float]:
  '''Pair a computed multiplier with the building's stored override.'''
  return Resolved.from_policy(output, optional_number(override))


def power_authority_multiplier(grid: Optional[str], factors: FactorSet,
                               override: Optional[float] = None
                              ) -> Resolved[float]:
  return resolve_multiplier(POWER_AUTHORITY.compute(grid, factors), override)


def ownership_multiplier(status: Optional[str], factors: FactorSet,
                         override: Optional[float] = None) -> Resolved[float]:
  return resolve_multiplier(OWNERSHIP.compute(status, factors), override)


def size_multiplier(site_total_mw: float, factors: FactorSet,
                    override: Optional[float] = None) -> Resolved[float]:
  return resolve_multiplier(SiteSizeMultiplier().compute(site_total_mw,
                                                         factors), override)


def tier_multiplier(tier: Optional[str], factors: FactorSet,
                    override: Optional[float] = None) -> Resolved[float]:
  return resolve_multiplier(DATACENTER_TIER.compute(tier, factors), override)


def lease_structure_multiplier(structure: Optional[str], factors: FactorSet,
                               override: Optional[float] = None
                              ) -> Resolved[float]:
  return resolve_multiplier(LEASE_STRUCTURE.compute(structure, factors),
                            override)
