"""
Phase probability policy.

Maps a building's development phase to the probability that its capacity
is delivered. Unmapped phases fall back to a coin flip.
"""

from typing import Optional

from sotp.config.resolver import FactorSet
from sotp.domain.numeric import optional_number
from sotp.domain.types import DevelopmentPhase
from sotp.domain.types import PolicyOutput
from sotp.domain.types import Resolved

PHASE_PROBABILITY_KEYS = {
    DevelopmentPhase.OPERATIONAL: 'probOperational',
    DevelopmentPhase.CONSTRUCTION: 'probConstruction',
    DevelopmentPhase.DEVELOPMENT: 'probDevelopment',
    DevelopmentPhase.EXCLUSIVITY: 'probExclusivity',
    DevelopmentPhase.DILIGENCE: 'probDiligence',
}

UNMAPPED_PHASE_PROBABILITY = 0.5


def probability_key_for(phase: Optional[str]) -> Optional[str]:
  '''Factor key for a phase label, or None when the phase is unknown.'''
  if not phase:
    return None
  try:
    return PHASE_PROBABILITY_KEYS[DevelopmentPhase(str(phase).strip().upper())]
  except ValueError:
    return None


class PhaseProbability:
  """Phase-derived delivery probability."""

  def __init__(self, fallback: float = UNMAPPED_PHASE_PROBABILITY):
    self.fallback = fallback

  def compute(self, phase: Optional[str],
              factors: FactorSet) -> PolicyOutput[float]:
    key = probability_key_for(phase)
    if key is None:
      return PolicyOutput(value=self.fallback,
                          diag={
                              'phase': phase,
                              'factor_key': None,
                              'unmapped': True,
                          })
    return PolicyOutput(value=factors.number(key, self.fallback),
                        diag={
                            'phase': phase,
                            'factor_key': key,
                        })


def resolve_phase_probability(
    phase: Optional[str],
    override: Optional[float],
    factors: FactorSet,
) -> Resolved[float]:
  '''Phase probability with the building-level override applied.'''
  return Resolved.from_policy(PhaseProbability().compute(phase, factors),
                              optional_number(override))
