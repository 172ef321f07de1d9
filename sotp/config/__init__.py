"""Default factor table and override resolution."""

from sotp.config.defaults import DEFAULT_FACTORS
from sotp.config.resolver import FactorSet
from sotp.config.resolver import resolve_factors

__all__ = ['DEFAULT_FACTORS', 'FactorSet', 'resolve_factors']
