'''
Tenant credit policy.

A contracted lease is worth more when the counterparty borrows cheaply.
Each known tenant carries a credit spread (percentage points over the base
rate, SOFR by default); the multiplier is

  base_rate / (base_rate + spread)

so a negative spread (investment-grade hyperscaler) lifts value and a
positive spread cuts it. No tenant at all means no adjustment (1.0).
'''

import logging
import math
import re
from typing import Optional

from sotp.config.defaults import TENANT_CREDIT_FACTORS
from sotp.config.resolver import FactorSet
from sotp.domain.types import PolicyOutput
from sotp.policies.rules import rule
from sotp.policies.rules import SubstringRuleSet

logger = logging.getLogger(__name__)

KNOWN_TENANTS = SubstringRuleSet(
    name='tenant_credit',
    rules=[
        rule('Google', 'tcGoogle', 'google'),
        rule('Microsoft', 'tcMicrosoft', 'microsoft', 'azure'),
        rule('Amazon', 'tcAmazon', 'amazon', 'aws'),
        rule('Meta', 'tcMeta', 'meta', 'facebook'),
        rule('Oracle', 'tcOracle', 'oracle'),
        rule('CoreWeave', 'tcCoreweave', 'coreweave'),
        rule('Anthropic', 'tcAnthropic', 'anthropic'),
        rule('OpenAI', 'tcOpenai', 'openai'),
        rule('xAI', 'tcXai', 'xai'),
    ],
    default=rule('Other', 'tcOther'),
    fallback_value=0.0,
)

TENANT_KEY_PREFIX = 'tc'
BASE_RATE_KEY = 'sofrRate'
DEFAULT_BASE_RATE = 4.3


def tenant_factor_key(name: str) -> str:
  '''Settings key used for a user-defined tenant ("Nebius AI" -> tcNebiusAI).'''
  return TENANT_KEY_PREFIX + re.sub(r'[^a-zA-Z0-9]', '', name)


def _custom_tenant_key(tenant: str, factors: FactorSet) -> Optional[str]:
  wanted = re.sub(r'[^a-z0-9]', '', tenant.lower())
  if not wanted:
    return None
  for key in factors.with_prefix(TENANT_KEY_PREFIX):
    if key in TENANT_CREDIT_FACTORS:
      continue
    if key[len(TENANT_KEY_PREFIX):].lower() == wanted:
      return key
  return None


def credit_multiplier(base_rate: float, spread: float) -> float:
  '''base_rate / (base_rate + spread), 0 when undefined.'''
  denominator = base_rate + spread
  if denominator == 0:
    return 0.0
  multiplier = base_rate / denominator
  return multiplier if math.isfinite(multiplier) else 0.0


class TenantCredit:
  """Credit-spread multiplier for a named tenant."""

  def compute(self, tenant: Optional[str],
              factors: FactorSet) -> PolicyOutput[float]:
    '''
    Compute the tenant credit multiplier.

    Args:
      tenant: Free-text tenant name; blank means no counterparty
      factors: Effective factors (base rate and tc* spreads)

    Returns:
      PolicyOutput with multiplier; diag carries spread and matched bucket
    '''
    if tenant is None or not tenant.strip():
      return PolicyOutput(value=1.0, diag={'tenant': None, 'spread': None})

    base_rate = factors.number(BASE_RATE_KEY, DEFAULT_BASE_RATE)
    matched = KNOWN_TENANTS.match(tenant)
    key, label = matched.factor_key, matched.label
    if matched is KNOWN_TENANTS.default:
      custom_key = _custom_tenant_key(tenant, factors)
      if custom_key is not None:
        key, label = custom_key, tenant.strip()

    spread = factors.number(key, 0.0)
    multiplier = credit_multiplier(base_rate, spread)
    logger.debug('Tenant %r -> %s (spread %.2f, mult %.4f)', tenant, key,
                 spread, multiplier)
    return PolicyOutput(value=multiplier,
                        diag={
                            'tenant': tenant,
                            'bucket': label,
                            'factor_key': key,
                            'spread': spread,
                            'base_rate': base_rate,
                            'implied_rate': base_rate + spread,
                        })
