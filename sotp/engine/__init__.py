'''Valuation engine: DCF math, capacity allocation and SOTP roll-up.'''

from sotp.engine.dcf import compute_noi_cap_rate_value
from sotp.engine.allocation import resolve_allocation
from sotp.engine.company import value_building
from sotp.engine.company import value_company

__all__ = [
    'compute_noi_cap_rate_value',
    'resolve_allocation',
    'value_building',
    'value_company',
]
