'''
MW allocation of a building's capacity across its current use periods.

Resolved once per building, before any valuation, into one of four kinds:

  UNALLOCATED            no current use period; the whole building is valued
                         as one implicit uncontracted period
  SINGLE_FULL            exactly one current period without an explicit
                         allocation; it receives the full building capacity
  SPLIT_EXPLICIT         every period uses its stored mw_allocation (periods
                         without one get 0 unless exactly one is missing)
  SPLIT_WITH_REMAINDER   exactly one period lacks an allocation in a split
                         group; it absorbs max(capacity - allocated, 0)
'''

from dataclasses import dataclass
from enum import Enum
import logging
from typing import List, Optional, Tuple

from sotp.domain.numeric import safe_number
from sotp.domain.types import Building
from sotp.domain.types import UsePeriod

logger = logging.getLogger(__name__)


class AllocationKind(str, Enum):
  UNALLOCATED = 'UNALLOCATED'
  SINGLE_FULL = 'SINGLE_FULL'
  SPLIT_EXPLICIT = 'SPLIT_EXPLICIT'
  SPLIT_WITH_REMAINDER = 'SPLIT_WITH_REMAINDER'


@dataclass(frozen=True)
class PeriodAllocation:
  '''MW assigned to one current use period (None for the implicit period).'''
  period: Optional[UsePeriod]
  mw: float
  explicit: bool


@dataclass(frozen=True)
class CapacityAllocation:
  '''
  Allocation of a building's capacity.

  Attributes:
    kind: Which allocation rule applied
    total_it_mw: Building capacity (IT MW, else gross MW)
    periods: Per-period allocations, in stored order
    remainder_index: Index into periods of the remainder-absorbing period
  '''
  kind: AllocationKind
  total_it_mw: float
  periods: Tuple[PeriodAllocation, ...]
  remainder_index: Optional[int] = None

  @property
  def allocated_mw(self) -> float:
    return sum(p.mw for p in self.periods)

  @property
  def unallocated_mw(self) -> float:
    return max(self.total_it_mw - self.allocated_mw, 0.0)

  @property
  def over_allocated(self) -> bool:
    return self.allocated_mw > self.total_it_mw + 1e-9

  def to_dict(self) -> dict:
    return {
        'kind': self.kind.value,
        'totalItMw': self.total_it_mw,
        'allocatedMw': self.allocated_mw,
        'unallocatedMw': self.unallocated_mw,
        'remainderIndex': self.remainder_index,
        'periods': [{
            'usePeriodId': p.period.id if p.period is not None else None,
            'mw': p.mw,
            'explicit': p.explicit,
        } for p in self.periods],
    }


def _explicit_mw(period: UsePeriod) -> Optional[float]:
  if period.mw_allocation is None:
    return None
  return safe_number(period.mw_allocation)


def resolve_allocation(building: Building) -> CapacityAllocation:
  '''
  Decide how much capacity each current use period of a building values.

  Args:
    building: Building with its use periods

  Returns:
    CapacityAllocation describing the rule applied and per-period MW
  '''
  capacity = building.capacity_mw
  current: List[UsePeriod] = building.current_periods

  if not current:
    return CapacityAllocation(
        kind=AllocationKind.UNALLOCATED,
        total_it_mw=capacity,
        periods=(PeriodAllocation(period=None, mw=capacity, explicit=False),),
    )

  if len(current) == 1 and current[0].mw_allocation is None:
    return CapacityAllocation(
        kind=AllocationKind.SINGLE_FULL,
        total_it_mw=capacity,
        periods=(PeriodAllocation(period=current[0], mw=capacity,
                                  explicit=False),),
    )

  if len(current) > 1 and not all(p.is_split for p in current):
    logger.warning(
        'Building %s has %d current use periods not all marked as splits; '
        'valuing them as a split group', building.id, len(current))

  explicit = [_explicit_mw(p) for p in current]
  missing = [i for i, mw in enumerate(explicit) if mw is None]
  allocated = sum(mw for mw in explicit if mw is not None)

  if len(missing) == 1:
    remainder_index = missing[0]
    remainder = max(capacity - allocated, 0.0)
    periods = tuple(
        PeriodAllocation(period=p,
                         mw=remainder if i == remainder_index else mw,
                         explicit=i != remainder_index)
        for i, (p, mw) in enumerate(zip(current, explicit)))
    result = CapacityAllocation(kind=AllocationKind.SPLIT_WITH_REMAINDER,
                                total_it_mw=capacity,
                                periods=periods,
                                remainder_index=remainder_index)
  else:
    periods = tuple(
        PeriodAllocation(period=p,
                         mw=mw if mw is not None else 0.0,
                         explicit=mw is not None)
        for p, mw in zip(current, explicit))
    result = CapacityAllocation(kind=AllocationKind.SPLIT_EXPLICIT,
                                total_it_mw=capacity,
                                periods=periods)

  if result.over_allocated:
    logger.warning('Building %s allocates %.1f MW of %.1f MW capacity',
                   building.id, result.allocated_mw, capacity)
  return result
