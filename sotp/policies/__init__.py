"""
Multiplier policies for the per-building factor chain.

Each policy computes one multiplier from building or use-period attributes
plus the effective factors and returns both a value and diagnostic
information (PolicyOutput). Building-level overrides are applied by the
resolve_* helpers, which return Resolved values (auto, override, final).

To add a free-text lookup:
1. Declare a SubstringRuleSet of rule(label, factor_key, *patterns)
2. Add its factor keys to sotp/config/defaults.py
"""

from sotp.policies.context import DATACENTER_TIER
from sotp.policies.context import LEASE_STRUCTURE
from sotp.policies.context import OWNERSHIP
from sotp.policies.context import POWER_AUTHORITY
from sotp.policies.context import SiteSizeMultiplier
from sotp.policies.phase import PhaseProbability
from sotp.policies.rules import SubstringRuleSet
from sotp.policies.tenant import TenantCredit
from sotp.policies.time_value import TimeValueDiscount

__all__ = [
  'PhaseProbability',
  'SubstringRuleSet', 'POWER_AUTHORITY', 'OWNERSHIP', 'DATACENTER_TIER',
  'LEASE_STRUCTURE', 'SiteSizeMultiplier',
  'TenantCredit',
  'TimeValueDiscount',
]
