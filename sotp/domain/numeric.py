'''Numeric guards shared by every valuation step.'''

import math
from typing import Any, Optional


def safe_number(value: Any, fallback: float = 0.0) -> float:
  '''
  Coerce a value to a finite float.

  None, non-numeric values, NaN and +/-inf all collapse to fallback so a
  single bad input never propagates into a sum.
  '''
  if value is None or isinstance(value, bool):
    return fallback
  try:
    number = float(value)
  except (TypeError, ValueError):
    return fallback
  if not math.isfinite(number):
    return fallback
  return number


def optional_number(value: Any) -> Optional[float]:
  '''Like safe_number, but keeps "not set" distinguishable from 0.'''
  if value is None:
    return None
  number = safe_number(value, fallback=math.nan)
  return None if math.isnan(number) else number


def round_to(value: float, digits: int = 0) -> float:
  '''Round half away from zero (Python's round() is half-to-even).'''
  value = safe_number(value)
  scale = 10.0**digits
  rounded = math.floor(abs(value) * scale + 0.5) / scale
  return math.copysign(rounded, value) if rounded else 0.0
