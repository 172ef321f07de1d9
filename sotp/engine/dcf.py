"""
Pure NOI-cap-rate-with-terminal-value math.

No entities, no I/O: callers resolve every rate first. The method values a
contracted lease as the capitalized in-place NOI plus a probability-weighted,
discounted Gordon-growth terminal value at lease end:

  base_value         = noi / cap_rate
  terminal_noi       = noi * (1 + g) ** lease_years
  cap_rate_diff      = max(exit_cap_rate - g, 0.001)
  terminal_value_end = terminal_noi / cap_rate_diff
  terminal_value_pv  = terminal_value_end / (1 + r) ** lease_years * p_renew
  gross_value        = base_value + terminal_value_pv

Every step substitutes 0 for a non-finite result.
"""

from math import isfinite

from sotp.domain.types import DcfBreakdown

MIN_CAP_RATE_DIFF = 0.001


def _finite(value: float) -> float:
  return value if isfinite(value) else 0.0


def _power(base: float, exponent: float) -> float:
  """base ** exponent, NaN where the real result is undefined."""
  if base < 0 and not float(exponent).is_integer():
    return float('nan')
  try:
    return float(base**exponent)
  except (OverflowError, ZeroDivisionError):
    return float('inf')


def compute_base_value(noi_annual: float, cap_rate: float) -> float:
  """Capitalized in-place NOI; 0 when the cap rate is not positive."""
  if cap_rate <= 0:
    return 0.0
  return _finite(noi_annual / cap_rate)


def compute_terminal_noi(noi_annual: float, terminal_growth_rate: float,
                         lease_years: float) -> float:
  return _finite(noi_annual * _power(1.0 + terminal_growth_rate, lease_years))


def compute_cap_rate_diff(exit_cap_rate: float,
                          terminal_growth_rate: float) -> float:
  """Gordon denominator, floored so exit_cap <= growth never divides by 0."""
  return max(exit_cap_rate - terminal_growth_rate, MIN_CAP_RATE_DIFF)


def compute_terminal_value_pv(
    terminal_value_end: float,
    discount_rate: float,
    lease_years: float,
    renewal_probability: float,
) -> float:
  """
  Discount the lease-end terminal value to today.

  Args:
    terminal_value_end: Gordon-growth value at lease end
    discount_rate: Required return (r)
    lease_years: Years until lease end
    renewal_probability: Probability the asset is re-leased

  Returns:
    Present value of the terminal value, weighted by renewal probability
  """
  discount = _power(1.0 + discount_rate, lease_years)
  if not isfinite(discount) or discount == 0:
    return 0.0
  return _finite(terminal_value_end / discount * renewal_probability)


def compute_noi_cap_rate_value(
    noi_annual: float,
    cap_rate: float,
    exit_cap_rate: float,
    terminal_growth_rate: float,
    discount_rate: float,
    lease_years: float,
    renewal_probability: float,
) -> DcfBreakdown:
  """
  Value a contracted lease from its annual NOI.

  Args:
    noi_annual: Annual NOI, $M
    cap_rate: Going-in cap rate
    exit_cap_rate: Exit cap rate at lease end
    terminal_growth_rate: NOI growth rate over the lease term
    discount_rate: Rate used to discount the terminal value
    lease_years: Lease term (terminal horizon)
    renewal_probability: Probability the asset re-leases at term end

  Returns:
    DcfBreakdown with every intermediate step; gross_value is the
    unadjusted value before the combined factor and tenant multiplier
  """
  base_value = compute_base_value(noi_annual, cap_rate)
  terminal_noi = compute_terminal_noi(noi_annual, terminal_growth_rate,
                                      lease_years)
  cap_rate_diff = compute_cap_rate_diff(exit_cap_rate, terminal_growth_rate)
  terminal_value_end = _finite(terminal_noi / cap_rate_diff)
  terminal_value_pv = compute_terminal_value_pv(terminal_value_end,
                                                discount_rate, lease_years,
                                                renewal_probability)
  gross_value = _finite(base_value + terminal_value_pv)

  return DcfBreakdown(
      noi_annual=noi_annual,
      cap_rate=cap_rate,
      exit_cap_rate=exit_cap_rate,
      terminal_growth_rate=terminal_growth_rate,
      discount_rate=discount_rate,
      lease_years=lease_years,
      renewal_probability=renewal_probability,
      base_value=base_value,
      terminal_noi=terminal_noi,
      cap_rate_diff=cap_rate_diff,
      terminal_value_end=terminal_value_end,
      terminal_value_pv=terminal_value_pv,
      gross_value=gross_value,
  )
