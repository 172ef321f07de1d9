'''
Domain types for the SOTP valuation engine.

Entities (Company -> Site -> Campus -> Building -> UsePeriod) are read-only
inputs owned by the entity store. The engine never mutates them; every
calculation pass turns a snapshot of entities plus a FactorSet into output
records defined at the bottom of this module.
'''

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

import pandas as pd

from sotp.domain.numeric import optional_number
from sotp.domain.numeric import round_to

T = TypeVar('T')


class UseType(str, Enum):
  '''Commercial use of (a portion of) a building's capacity.'''
  BTC_MINING = 'BTC_MINING'
  BTC_MINING_HOSTING = 'BTC_MINING_HOSTING'
  HPC_AI_HOSTING = 'HPC_AI_HOSTING'
  HPC_AI_PLANNED = 'HPC_AI_PLANNED'
  GPU_CLOUD = 'GPU_CLOUD'
  UNCONTRACTED = 'UNCONTRACTED'
  UNCONTRACTED_ROFR = 'UNCONTRACTED_ROFR'
  COLOCATION = 'COLOCATION'
  MIXED = 'MIXED'

  @classmethod
  def parse(cls, raw: Optional[str]) -> Optional['UseType']:
    '''
    Parse a stored use type.

    Empty or missing values are read as UNCONTRACTED. Unknown labels
    return None so callers can record them without valuing them.
    '''
    if raw is None:
      return cls.UNCONTRACTED
    text = str(raw).strip().upper()
    if not text:
      return cls.UNCONTRACTED
    try:
      return cls(text)
    except ValueError:
      return None


class DevelopmentPhase(str, Enum):
  OPERATIONAL = 'OPERATIONAL'
  CONSTRUCTION = 'CONSTRUCTION'
  DEVELOPMENT = 'DEVELOPMENT'
  EXCLUSIVITY = 'EXCLUSIVITY'
  DILIGENCE = 'DILIGENCE'


class ValuationCategory(str, Enum):
  '''EV bucket a use period rolls up into.'''
  MINING = 'MINING'
  HPC_CONTRACTED = 'HPC_CONTRACTED'
  PIPELINE = 'PIPELINE'
  NONE = 'NONE'


class ValuationMethod(str, Enum):
  MW_VALUE = 'MW_VALUE'
  NOI_CAP_RATE = 'NOI_CAP_RATE'
  LEASE_VALUE = 'LEASE_VALUE'
  MW_PIPELINE = 'MW_PIPELINE'
  NONE = 'NONE'


class BuildingNotFoundError(LookupError):
  '''Raised when a building requested for drill-down does not exist.'''

  def __init__(self, building_id: str):
    super().__init__(f'Building not found: {building_id}')
    self.building_id = building_id


@dataclass
class PolicyOutput(Generic[T]):
  '''
  Standard output from any policy.

  Every policy returns both a computed value and diagnostic information
  explaining how the value was computed.

  Attributes:
    value: The computed value (type depends on policy)
    diag: Dictionary of diagnostic information
  '''
  value: T
  diag: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Resolved(Generic[T]):
  '''
  A computed ("auto") value paired with an optional stored override.

  The override, when set, replaces the auto value entirely.

  Attributes:
    auto: Value derived from factors and building attributes
    override: Value stored on the entity, or None when not overridden
    diag: Diagnostics from the policy that produced the auto value
  '''
  auto: T
  override: Optional[T] = None
  diag: Dict[str, Any] = field(default_factory=dict)

  @property
  def final(self) -> T:
    return self.auto if self.override is None else self.override

  @property
  def is_overridden(self) -> bool:
    return self.override is not None

  @classmethod
  def from_policy(cls, output: PolicyOutput[T],
                  override: Optional[T] = None) -> 'Resolved[T]':
    return cls(auto=output.value, override=override, diag=dict(output.diag))

  def to_dict(self) -> Dict[str, Any]:
    return {
        'auto': self.auto,
        'override': self.override,
        'final': self.final,
        **self.diag,
    }


# ----------------------------
# Entities
# ----------------------------


@dataclass(frozen=True)
class UsePeriod:
  '''
  Time-bounded allocation of a building's IT capacity to one use.

  Attributes:
    id: Use period identifier
    use_type: Raw stored use type (see UseType.parse)
    is_current: Whether this period is live
    is_split: Marks concurrent current periods sharing one building
    mw_allocation: Explicit IT MW allocated to this period
    tenant: Counterparty name (free text)
    lease_value_m: Total contract value, $M
    lease_years: Contract term in years
    lease_start: Lease commencement date
    noi_pct: NOI margin on annual lease revenue
    noi_annual_m: Stored annual NOI, $M (takes precedence when present)
    lease_structure: NNN / modified gross / gross (free text)
    start_date: Start of the use period
  '''
  id: str
  use_type: Optional[str] = None
  is_current: bool = True
  is_split: bool = False
  mw_allocation: Optional[float] = None
  tenant: Optional[str] = None
  lease_value_m: Optional[float] = None
  lease_years: Optional[float] = None
  lease_start: Optional[pd.Timestamp] = None
  noi_pct: Optional[float] = None
  noi_annual_m: Optional[float] = None
  lease_structure: Optional[str] = None
  start_date: Optional[pd.Timestamp] = None

  @property
  def parsed_use_type(self) -> Optional[UseType]:
    return UseType.parse(self.use_type)

  @property
  def has_tenant(self) -> bool:
    return bool(self.tenant and self.tenant.strip())

  @property
  def has_lease(self) -> bool:
    '''A lease is active when both a tenant and a contract value exist.'''
    return self.has_tenant and bool(self.lease_value_m)


@dataclass(frozen=True)
class Building:
  '''
  Unit of physical capacity.

  Every *_override field, when set, replaces the computed multiplier
  entirely. fidoodle_factor is a free custom multiplier (default 1.0).
  '''
  id: str
  name: str = ''
  gross_mw: float = 0.0
  it_mw: Optional[float] = None
  development_phase: Optional[str] = None
  grid: Optional[str] = None
  ownership_status: Optional[str] = None
  datacenter_tier: Optional[str] = None
  energization_date: Optional[pd.Timestamp] = None
  regulatory_risk: Optional[float] = 1.0
  probability_override: Optional[float] = None
  size_mult_override: Optional[float] = None
  power_auth_mult_override: Optional[float] = None
  ownership_mult_override: Optional[float] = None
  tier_mult_override: Optional[float] = None
  lease_struct_mult_override: Optional[float] = None
  time_value_override: Optional[float] = None
  cap_rate_override: Optional[float] = None
  exit_cap_rate_override: Optional[float] = None
  terminal_growth_override: Optional[float] = None
  fidoodle_factor: Optional[float] = 1.0
  include_in_valuation: bool = True
  use_periods: Tuple[UsePeriod, ...] = ()

  @property
  def capacity_mw(self) -> float:
    '''IT MW when known, otherwise gross MW.'''
    if self.it_mw is not None and self.it_mw > 0:
      return float(self.it_mw)
    return float(self.gross_mw or 0.0)

  @property
  def current_periods(self) -> List[UsePeriod]:
    return [p for p in self.use_periods if p.is_current]


@dataclass(frozen=True)
class Campus:
  id: str
  name: str = ''
  buildings: Tuple[Building, ...] = ()


@dataclass(frozen=True)
class Site:
  '''Geographic grouping of campuses.'''
  id: str
  name: str = ''
  campuses: Tuple[Campus, ...] = ()

  @property
  def buildings(self) -> List[Building]:
    return [b for campus in self.campuses for b in campus.buildings]

  @property
  def total_gross_mw(self) -> float:
    '''Aggregate gross MW across every building on the site.'''
    return sum(float(b.gross_mw or 0.0) for b in self.buildings)


@dataclass(frozen=True)
class Company:
  ticker: str
  name: str = ''
  fd_shares_m: Optional[float] = None
  stock_price: Optional[float] = None
  sites: Tuple[Site, ...] = ()


@dataclass(frozen=True)
class NetLiquidAssets:
  '''Cash, crypto holdings and debt for one ticker ($M, coin counts).'''
  ticker: str
  cash_m: Optional[float] = None
  btc_count: Optional[float] = None
  eth_count: Optional[float] = None
  total_debt_m: Optional[float] = None


@dataclass(frozen=True)
class MiningValuation:
  '''Company-level self-mining and hosting inputs for one ticker.'''
  ticker: str
  hashrate_eh: Optional[float] = None
  efficiency_jth: Optional[float] = None
  power_cost_kwh: Optional[float] = None
  hosted_mw: Optional[float] = None


@dataclass(frozen=True)
class BuildingRecord:
  '''A building together with its place in the hierarchy.'''
  company: Company
  site: Site
  campus: Campus
  building: Building


# ----------------------------
# Engine outputs
# ----------------------------


@dataclass(frozen=True)
class DcfBreakdown:
  '''
  Step values of the NOI-cap-rate-with-terminal-value method.

  Attributes:
    noi_annual: Annual NOI, $M
    cap_rate: Going-in cap rate
    exit_cap_rate: Exit cap rate at lease end
    terminal_growth_rate: NOI growth over the lease term
    discount_rate: Rate used to discount the terminal value
    lease_years: Lease term used as the terminal horizon
    renewal_probability: Probability the asset re-leases at term end
    base_value: noi_annual / cap_rate
    terminal_noi: NOI grown to the end of the lease
    cap_rate_diff: Floored exit cap rate minus terminal growth
    terminal_value_end: Gordon-growth value at lease end
    terminal_value_pv: Terminal value discounted and probability weighted
    gross_value: base_value + terminal_value_pv
  '''
  noi_annual: float
  cap_rate: float
  exit_cap_rate: float
  terminal_growth_rate: float
  discount_rate: float
  lease_years: float
  renewal_probability: float
  base_value: float
  terminal_noi: float
  cap_rate_diff: float
  terminal_value_end: float
  terminal_value_pv: float
  gross_value: float


@dataclass(frozen=True)
class BuildingFactors:
  '''
  Building-scoped factor chain, shared by every use period on a building.

  Attributes:
    phase: Development phase label
    phase_probability: Phase probability with override
    regulatory_risk: Regulatory risk multiplier (0-1)
    size: Site size multiplier with override
    power_authority: Power authority multiplier with override
    ownership: Ownership multiplier with override
    tier: Datacenter tier multiplier with override
    fidoodle: Free custom multiplier
    apply_tier: Whether the tier multiplier enters the product
  '''
  phase: Optional[str]
  phase_probability: Resolved[float]
  regulatory_risk: float
  size: Resolved[float]
  power_authority: Resolved[float]
  ownership: Resolved[float]
  tier: Resolved[float]
  fidoodle: float = 1.0
  apply_tier: bool = True

  @property
  def tier_factor(self) -> float:
    return self.tier.final if self.apply_tier else 1.0

  @property
  def building_factor(self) -> float:
    '''Product of the building-level multipliers, excluding fidoodle.'''
    return (self.phase_probability.final * self.regulatory_risk *
            self.size.final * self.power_authority.final *
            self.ownership.final * self.tier_factor)


@dataclass(frozen=True)
class PeriodFactors:
  '''Use-period scoped multipliers layered on top of BuildingFactors.'''
  building: BuildingFactors
  lease_structure: Resolved[float]
  time_value: Resolved[float]
  tenant: PolicyOutput[float]

  @property
  def combined_factor(self) -> float:
    '''Product of the nine sub-factors (tenant credit excluded).'''
    return (self.building.building_factor * self.lease_structure.final *
            self.time_value.final * self.building.fidoodle)

  def to_dict(self) -> Dict[str, Any]:
    b = self.building
    return {
        'phaseProb': b.phase_probability.final,
        'regRisk': b.regulatory_risk,
        'sizeMult': b.size.final,
        'powerAuthMult': b.power_authority.final,
        'ownershipMult': b.ownership.final,
        'tierMult': b.tier_factor,
        'fidoodle': b.fidoodle,
        'buildingFactor': b.building_factor,
        'tenantCreditMult': self.tenant.value,
        'leaseStructMult': self.lease_structure.final,
        'timeValueMult': self.time_value.final,
        'combinedFactor': self.combined_factor,
    }


@dataclass(frozen=True)
class PeriodValuation:
  '''
  Valuation of one use period (or the implicit period of a building
  without current use periods).
  '''
  use_period_id: Optional[str]
  building_id: str
  use_type: str
  category: ValuationCategory
  method: ValuationMethod
  mw: float
  gross_value: float
  combined_factor: float
  tenant_multiplier: float
  valuation: float
  factors: PeriodFactors
  tenant: Optional[str] = None
  noi_annual_m: float = 0.0
  lease_value_m: Optional[float] = None
  lease_years: Optional[float] = None
  lease_start: Optional[pd.Timestamp] = None
  dcf: Optional[DcfBreakdown] = None

  def to_dict(self) -> Dict[str, Any]:
    return {
        'usePeriodId': self.use_period_id,
        'buildingId': self.building_id,
        'useType': self.use_type,
        'category': self.category.value,
        'method': self.method.value,
        'tenant': self.tenant,
        'mw': self.mw,
        'grossValue': self.gross_value,
        'combinedFactor': self.combined_factor,
        'tenantMult': self.tenant_multiplier,
        'valuationM': self.valuation,
        'noiAnnualM': self.noi_annual_m,
        'leaseValueM': self.lease_value_m,
        'leaseYears': self.lease_years,
        'leaseStart': (self.lease_start.isoformat()
                       if self.lease_start is not None else None),
        'factors': self.factors.to_dict(),
    }


@dataclass
class CompanyValuation:
  '''
  Per-company SOTP roll-up. Figures are unrounded; to_dict() applies
  output rounding.
  '''
  ticker: str
  name: str
  stock_price: Optional[float]
  fd_shares_m: Optional[float]
  net_liquid: float
  total_mw: float
  ev_mining: float
  ev_hpc_contracted: float
  ev_hpc_pipeline: float
  total_lease_value_m: float
  mw_mining: float = 0.0
  mw_hpc_contracted: float = 0.0
  mw_hpc_pipeline: float = 0.0
  net_liquid_breakdown: Optional[Dict[str, Any]] = None
  mining_breakdown: Optional[Dict[str, Any]] = None
  hpc_sites: List[Dict[str, Any]] = field(default_factory=list)
  period_valuations: List[PeriodValuation] = field(default_factory=list)

  @property
  def total_ev(self) -> float:
    return self.ev_mining + self.ev_hpc_contracted + self.ev_hpc_pipeline

  @property
  def total_value_m(self) -> float:
    return self.net_liquid + self.total_ev

  @property
  def fair_value_per_share(self) -> Optional[float]:
    shares = optional_number(self.fd_shares_m)
    if shares is None or shares <= 0:
      return None
    return self.total_value_m / shares

  def to_dict(self) -> Dict[str, Any]:
    '''
    Output contract for one company.

    Dollar figures are rounded to whole $M, net liquid and lease totals to
    one decimal, per-share figures to two decimals.
    '''
    fair_value = self.fair_value_per_share
    upside = None
    if fair_value is not None and self.stock_price:
      upside = round_to((fair_value / self.stock_price - 1.0) * 100.0, 1)
    return {
        'ticker': self.ticker,
        'name': self.name,
        'stockPrice': self.stock_price,
        'fdSharesM': self.fd_shares_m,
        'netLiquid': round_to(self.net_liquid, 1),
        'totalMw': round_to(self.total_mw, 1),
        'mwMining': round_to(self.mw_mining, 1),
        'mwHpcContracted': round_to(self.mw_hpc_contracted, 1),
        'mwHpcPipeline': round_to(self.mw_hpc_pipeline, 1),
        'evMining': round_to(self.ev_mining),
        'evHpcContracted': round_to(self.ev_hpc_contracted),
        'evHpcPipeline': round_to(self.ev_hpc_pipeline),
        'totalEv': round_to(self.total_ev),
        'totalValueM': round_to(self.total_value_m),
        'fairValuePerShare': (round_to(fair_value, 2)
                              if fair_value is not None else None),
        'upsidePct': upside,
        'totalLeaseValueM': round_to(self.total_lease_value_m, 1),
        'netLiquidBreakdown': self.net_liquid_breakdown,
        'miningBreakdown': self.mining_breakdown,
        'hpcSites': self.hpc_sites,
        'periodValuations': [p.to_dict() for p in self.period_valuations],
    }
