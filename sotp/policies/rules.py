'''
Ordered substring rule sets.

Free-text building attributes (grid, ownership status, tier, lease
structure, tenant) are classified by evaluating (patterns, factor key)
rules in priority order; the first rule whose pattern occurs in the
lowercased text wins, otherwise the explicit default applies.
'''

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from sotp.config.resolver import FactorSet
from sotp.domain.types import PolicyOutput


@dataclass(frozen=True)
class SubstringRule:
  '''
  One classification rule.

  Attributes:
    label: Bucket name reported in diagnostics
    factor_key: Factor holding the bucket's value
    patterns: Lowercase substrings, any of which selects this bucket
  '''
  label: str
  factor_key: str
  patterns: Tuple[str, ...]

  def matches(self, text: str) -> bool:
    return any(p in text for p in self.patterns)


class SubstringRuleSet:
  '''
  Priority-ordered rules with an explicit default bucket.

  A blank input selects `missing` (defaults to `default`), so a missing
  datacenter tier can resolve differently from an unrecognized one.
  '''

  def __init__(
      self,
      name: str,
      rules: Sequence[SubstringRule],
      default: SubstringRule,
      missing: Optional[SubstringRule] = None,
      fallback_value: float = 1.0,
  ):
    self.name = name
    self.rules = tuple(rules)
    self.default = default
    self.missing = missing or default
    self.fallback_value = fallback_value

  def match(self, text: Optional[str]) -> SubstringRule:
    if text is None or not str(text).strip():
      return self.missing
    lowered = str(text).strip().lower()
    for rule in self.rules:
      if rule.matches(lowered):
        return rule
    return self.default

  def compute(self, text: Optional[str],
              factors: FactorSet) -> PolicyOutput[float]:
    rule = self.match(text)
    value = factors.number(rule.factor_key, self.fallback_value)
    return PolicyOutput(value=value,
                        diag={
                            'rule_set': self.name,
                            'input': text,
                            'bucket': rule.label,
                            'factor_key': rule.factor_key,
                        })


def rule(label: str, factor_key: str, *patterns: str) -> SubstringRule:
  return SubstringRule(label=label,
                       factor_key=factor_key,
                       patterns=tuple(p.lower() for p in patterns))
