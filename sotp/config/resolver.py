"""
Factor resolution: default table + persisted user overrides.

A FactorSet holds two immutable layers and composes them on construction.
Nothing is merged in place, so two calculation passes built from the same
inputs always see the same factors.

Usage:
  from sotp.config.resolver import resolve_factors

  factors = resolve_factors({'btcPrice': '105000', 'tcNebius': 0.5})
  factors.number('btcPrice', 0.0)   # 105000.0
"""

from dataclasses import dataclass
from dataclasses import field
import logging
import math
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from sotp.config.defaults import DEFAULT_FACTORS

logger = logging.getLogger(__name__)


def coerce_setting(value: Any) -> Any:
  '''
  Coerce a persisted setting value.

  Numbers become floats, numeric strings are parsed, anything else is kept
  verbatim.
  '''
  if isinstance(value, bool):
    return value
  if isinstance(value, (int, float)):
    return float(value)
  if isinstance(value, str):
    text = value.strip()
    try:
      return float(text)
    except ValueError:
      return value
  return value


@dataclass(frozen=True)
class FactorSet:
  """
  Effective factors for one calculation pass.

  Attributes:
    defaults: Default factor table
    overrides: Coerced user overrides (may contain keys absent from defaults)
  """
  defaults: Mapping[str, Any] = field(default_factory=lambda: DEFAULT_FACTORS)
  overrides: Mapping[str, Any] = field(default_factory=dict)
  _merged: Mapping[str, Any] = field(init=False, repr=False, compare=False)

  def __post_init__(self):
    defaults = MappingProxyType(dict(self.defaults))
    overrides = MappingProxyType(dict(self.overrides))
    object.__setattr__(self, 'defaults', defaults)
    object.__setattr__(self, 'overrides', overrides)
    object.__setattr__(self, '_merged',
                       MappingProxyType({**defaults, **overrides}))

  @property
  def merged(self) -> Mapping[str, Any]:
    return self._merged

  def __contains__(self, key: str) -> bool:
    return key in self._merged

  def get(self, key: str, fallback: Any = None) -> Any:
    return self._merged.get(key, fallback)

  def number(self, key: str, fallback: float) -> float:
    '''Numeric factor value, or fallback when missing or non-numeric.'''
    value = self._merged.get(key)
    if value is None or isinstance(value, bool):
      return fallback
    try:
      number = float(value)
    except (TypeError, ValueError):
      logger.warning('Factor %s is not numeric (%r); using %s', key, value,
                     fallback)
      return fallback
    if not math.isfinite(number):
      return fallback
    return number

  def flag(self, key: str, fallback: bool = False) -> bool:
    return self.number(key, 1.0 if fallback else 0.0) != 0.0

  def with_prefix(self, prefix: str) -> Dict[str, Any]:
    '''All merged entries whose key starts with prefix.'''
    return {k: v for k, v in self._merged.items() if k.startswith(prefix)}

  def to_dict(self) -> Dict[str, Any]:
    return dict(self._merged)


def resolve_factors(
    overrides: Optional[Mapping[str, Any]] = None,
    defaults: Mapping[str, Any] = DEFAULT_FACTORS,
) -> FactorSet:
  '''
  Merge persisted settings over the default factor table.

  Args:
    overrides: Settings key/value map; None values are dropped
    defaults: Base factor table

  Returns:
    FactorSet where override values win. Override keys unknown to the
    defaults are retained (user-defined tenants, for example).
  '''
  coerced = {
      key: coerce_setting(value)
      for key, value in (overrides or {}).items()
      if value is not None
  }
  unknown = sorted(set(coerced) - set(defaults))
  if unknown:
    logger.debug('Retaining %d override keys without defaults: %s',
                 len(unknown), ', '.join(unknown))
  return FactorSet(defaults=defaults, overrides=coerced)
