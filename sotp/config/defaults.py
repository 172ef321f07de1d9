"""
Default valuation factors.

Every factor the engine reads has an entry here. User settings are layered
on top by sotp.config.resolver; this table itself is never mutated.

Units:
  - prices in USD, sofrRate and tenant spreads in percentage points
  - $/MW values in $M per MW
  - rates and probabilities as fractions
"""

from types import MappingProxyType
from typing import Any, Mapping

MARKET_FACTORS = {
    'btcPrice': 97000.0,
    'ethPrice': 2500.0,
    'sofrRate': 4.3,
}

HPC_FACTORS = {
    'hpcCapRate': 0.075,
    'hpcExitCapRate': 0.08,
    'terminalGrowthRate': 0.025,
    'discountRate': 0.10,
    'leaseRenewalProbability': 0.85,
    'mwValueHpcUncontracted': 8.0,
    'mwValueHpcContracted': 25.0,
    'defaultLeaseYears': 10.0,
}

MINING_FACTORS = {
    'ebitdaMultiple': 6.0,
    'dailyRevPerEh': 29400.0,
    'poolFeePct': 0.02,
    'mwValueBtcMining': 0.3,
    'defaultEfficiencyJth': 20.0,
    'defaultPowerCostKwh': 0.04,
}

PHASE_FACTORS = {
    'probOperational': 1.0,
    'probConstruction': 0.9,
    'probDevelopment': 0.7,
    'probExclusivity': 0.5,
    'probDiligence': 0.3,
}

TIER_FACTORS = {
    'tierIvMult': 1.15,
    'tierIiiMult': 1.00,
    'tierIiMult': 0.90,
    'tierIMult': 0.80,
    'applyTierMult': 1.0,
}

OWNERSHIP_FACTORS = {
    'ownedMult': 1.00,
    'longtermLeaseMult': 0.95,
    'shorttermLeaseMult': 0.85,
}

LEASE_STRUCTURE_FACTORS = {
    'nnnMult': 1.00,
    'modifiedGrossMult': 0.95,
    'grossMult': 0.90,
}

POWER_AUTHORITY_FACTORS = {
    'paErcot': 1.05,
    'paPjm': 1.00,
    'paMiso': 0.95,
    'paNyiso': 0.95,
    'paCaiso': 0.90,
    'paCanada': 0.95,
    'paNorway': 0.90,
    'paUae': 0.85,
    'paBhutan': 0.70,
    'paParaguay': 0.70,
    'paEthiopia': 0.60,
    'paOther': 0.80,
}

TENANT_CREDIT_FACTORS = {
    'tcGoogle': -1.00,
    'tcMicrosoft': -1.00,
    'tcAmazon': -1.00,
    'tcMeta': -0.75,
    'tcOracle': -0.50,
    'tcCoreweave': 0.00,
    'tcAnthropic': 0.00,
    'tcOpenai': 0.00,
    'tcXai': 0.25,
    'tcOther': 1.00,
    'tcSelf': 3.00,
}

SIZE_FACTORS = {
    'sizeGte500': 1.10,
    'size250to499': 1.00,
    'size100to249': 0.95,
    'sizeLt100': 0.85,
}

TIME_VALUE_FACTORS = {
    'energizationBaseYear': 2025.0,
    'energizationDecayRate': 0.15,
    'timeValueExponential': 0.0,
}

FACTOR_SECTIONS: Mapping[str, Mapping[str, float]] = MappingProxyType({
    'market': MARKET_FACTORS,
    'hpc': HPC_FACTORS,
    'mining': MINING_FACTORS,
    'phases': PHASE_FACTORS,
    'datacenterTier': TIER_FACTORS,
    'ownership': OWNERSHIP_FACTORS,
    'leaseStructure': LEASE_STRUCTURE_FACTORS,
    'powerAuthority': POWER_AUTHORITY_FACTORS,
    'tenantCredit': TENANT_CREDIT_FACTORS,
    'siteSize': SIZE_FACTORS,
    'timeValue': TIME_VALUE_FACTORS,
})


def _flatten(sections: Mapping[str, Mapping[str, float]]) -> dict[str, Any]:
  flat: dict[str, Any] = {}
  for section in sections.values():
    flat.update(section)
  return flat


DEFAULT_FACTORS: Mapping[str, Any] = MappingProxyType(_flatten(FACTOR_SECTIONS))
