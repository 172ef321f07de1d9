"""Domain types for the SOTP valuation engine."""

from sotp.domain.types import Building
from sotp.domain.types import BuildingNotFoundError
from sotp.domain.types import Company
from sotp.domain.types import CompanyValuation
from sotp.domain.types import PeriodValuation
from sotp.domain.types import PolicyOutput
from sotp.domain.types import Resolved
from sotp.domain.types import UsePeriod

__all__ = [
    'Building',
    'BuildingNotFoundError',
    'Company',
    'CompanyValuation',
    'PeriodValuation',
    'PolicyOutput',
    'Resolved',
    'UsePeriod',
]
