'''
Time-value policy.

Capacity that only starts earning in the future is discounted to today.
The reference date is the lease start when known, otherwise the building's
energization date. Reference dates on or before today carry no discount.

Two discounting methods are supported:
  compound:     1 / (1 + discountRate) ** years
  exponential:  exp(-energizationDecayRate * years)
selected by the `timeValueExponential` factor.
'''

import logging
import math
from typing import Any, Optional

import pandas as pd

from sotp.config.resolver import FactorSet
from sotp.domain.numeric import optional_number
from sotp.domain.types import PolicyOutput
from sotp.domain.types import Resolved

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25


def to_timestamp(value: Any) -> Optional[pd.Timestamp]:
  '''
  Parse a date-like value into a tz-naive Timestamp.

  Blank and unparseable values (free text such as "TBD") give None.
  '''
  if value is None or value == '':
    return None
  try:
    ts = pd.Timestamp(value)
  except (ValueError, TypeError, pd.errors.OutOfBoundsDatetime):
    logger.warning('Ignoring unparseable date %r', value)
    return None
  if pd.isna(ts):
    return None
  if ts.tzinfo is not None:
    ts = ts.tz_convert('UTC').tz_localize(None)
  return ts


def years_between(start: pd.Timestamp, end: pd.Timestamp) -> float:
  return (end - start) / pd.Timedelta(days=DAYS_PER_YEAR)


def compound_multiplier(years: float, discount_rate: float) -> float:
  base = 1.0 + discount_rate
  if base <= 0:
    return 0.0
  try:
    multiplier = 1.0 / base**years
  except (OverflowError, ZeroDivisionError):
    return 0.0
  return multiplier if math.isfinite(multiplier) else 0.0


def exponential_multiplier(years: float, decay_rate: float) -> float:
  try:
    multiplier = math.exp(-decay_rate * years)
  except OverflowError:
    return 0.0
  return multiplier if math.isfinite(multiplier) else 0.0


class TimeValueDiscount:
  """Present-value multiplier from a lease start or energization date."""

  def compute(
      self,
      lease_start: Any,
      energization_date: Any,
      factors: FactorSet,
      now: Optional[pd.Timestamp] = None,
  ) -> PolicyOutput[float]:
    '''
    Compute the time-value multiplier.

    Args:
      lease_start: Lease commencement date (preferred reference)
      energization_date: Building energization date (fallback reference)
      factors: Effective factors (discountRate, decay settings)
      now: Valuation date (default: current time)

    Returns:
      PolicyOutput with multiplier in (0, 1]; diag carries the reference
      source ('leaseStart', 'energization' or None) and years from now
    '''
    now = to_timestamp(now) if now is not None else pd.Timestamp.now()
    ref = to_timestamp(lease_start)
    source = 'leaseStart'
    if ref is None:
      ref = to_timestamp(energization_date)
      source = 'energization'
    if ref is None:
      return PolicyOutput(value=1.0, diag={'source': None, 'years': 0.0})

    diag = {'source': source, 'refDate': ref.date().isoformat()}
    if ref.normalize() <= now.normalize():
      return PolicyOutput(value=1.0, diag={**diag, 'years': 0.0})

    years = years_between(now, ref)
    if factors.flag('timeValueExponential'):
      decay_rate = factors.number('energizationDecayRate', 0.15)
      multiplier = exponential_multiplier(years, decay_rate)
      diag.update({'method': 'exponential', 'decayRate': decay_rate})
    else:
      discount_rate = factors.number('discountRate', 0.10)
      multiplier = compound_multiplier(years, discount_rate)
      diag.update({'method': 'compound', 'discountRate': discount_rate})
    diag['years'] = years
    return PolicyOutput(value=multiplier, diag=diag)


def resolve_time_value(
    lease_start: Any,
    energization_date: Any,
    factors: FactorSet,
    now: Optional[pd.Timestamp] = None,
    override: Optional[float] = None,
) -> Resolved[float]:
  output = TimeValueDiscount().compute(lease_start, energization_date, factors,
                                       now)
  return Resolved.from_policy(output, optional_number(override))
