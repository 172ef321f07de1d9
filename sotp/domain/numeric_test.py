import math

import pytest

from sotp.domain.numeric import optional_number
from sotp.domain.numeric import round_to
from sotp.domain.numeric import safe_number


class TestSafeNumber:
  """Tests for safe_number guard."""

  def test_numeric_values(self):
    assert safe_number(3) == 3.0
    assert safe_number('3.5') == 3.5

  def test_missing_and_invalid(self):
    """None, text and booleans collapse to the fallback."""
    assert safe_number(None) == 0.0
    assert safe_number('abc') == 0.0
    assert safe_number(True, fallback=7.0) == 7.0

  def test_non_finite(self):
    assert safe_number(math.nan) == 0.0
    assert safe_number(math.inf, fallback=5.0) == 5.0
    assert safe_number(-math.inf) == 0.0


class TestOptionalNumber:

  def test_none_stays_none(self):
    assert optional_number(None) is None

  def test_nan_is_unset(self):
    assert optional_number(math.nan) is None

  def test_zero_is_kept(self):
    """Zero is a real value, distinct from unset."""
    assert optional_number(0) == 0.0
    assert optional_number('2') == 2.0


class TestRoundTo:
  """Tests for half-away-from-zero rounding."""

  def test_half_rounds_up(self):
    assert round_to(2.5) == 3.0
    assert round_to(0.5) == 1.0

  def test_negative_half_rounds_away(self):
    assert round_to(-2.5) == -3.0

  def test_digits(self):
    assert round_to(39.66, 1) == pytest.approx(39.7)
    assert round_to(1.234, 2) == pytest.approx(1.23)

  def test_non_finite_is_zero(self):
    assert round_to(math.nan, 1) == 0.0
