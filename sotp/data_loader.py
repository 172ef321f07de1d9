"""
Entity store access for valuation passes.

The engine only reads through a ValuationStore. SnapshotStore implements it
over a JSON export of the entity database and caches the parsed snapshot so
repeated calls (a full calculation followed by building drill-downs) do not
re-read the file.

Snapshot layout (camelCase, as exported):
  {
    "settings": {"btcPrice": "105000", ...},
    "companies": [
      {"ticker": "ABCD", "name": ..., "fdSharesM": ..., "stockPrice": ...,
       "archived": false,
       "sites": [{"id": ..., "name": ...,
                  "campuses": [{"id": ..., "name": ...,
                                "buildings": [{..., "usePeriods": [...]}]}]}]}
    ],
    "netLiquidAssets": [{"ticker": ..., "cashM": ..., "btcCount": ...}],
    "miningValuations": [{"ticker": ..., "hashrateEh": ..., ...}]
  }

Usage:
  store = SnapshotStore(Path('data/snapshot.json'))
  for company in store.fetch_companies():
    ...
"""

from abc import ABC
from abc import abstractmethod
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from sotp.domain.numeric import optional_number
from sotp.domain.types import Building
from sotp.domain.types import BuildingRecord
from sotp.domain.types import Campus
from sotp.domain.types import Company
from sotp.domain.types import MiningValuation
from sotp.domain.types import NetLiquidAssets
from sotp.domain.types import Site
from sotp.domain.types import UsePeriod
from sotp.policies.time_value import to_timestamp

logger = logging.getLogger(__name__)


class ValuationStore(ABC):
  """Read-only accessors the engine needs from the entity store."""

  @abstractmethod
  def fetch_companies(self) -> List[Company]:
    """Non-archived companies with their full site hierarchy."""

  @abstractmethod
  def fetch_settings(self) -> Dict[str, Any]:
    """Persisted factor overrides as a flat key/value map."""

  @abstractmethod
  def fetch_mining_valuation(self, ticker: str) -> Optional[MiningValuation]:
    pass

  @abstractmethod
  def fetch_net_liquid(self, ticker: str) -> Optional[NetLiquidAssets]:
    pass

  @abstractmethod
  def fetch_building(self, building_id: str) -> Optional[BuildingRecord]:
    """One building with its company/site/campus context, or None."""


def _bool(value: Any, default: bool) -> bool:
  if value is None:
    return default
  if isinstance(value, str):
    return value.strip().lower() in ('true', '1', 'yes', 'y')
  return bool(value)


def _text(value: Any) -> Optional[str]:
  if value is None:
    return None
  text = str(value).strip()
  return text or None


def parse_use_period(raw: Mapping[str, Any]) -> UsePeriod:
  return UsePeriod(
      id=str(raw['id']),
      use_type=_text(raw.get('useType')),
      is_current=_bool(raw.get('isCurrent'), True),
      is_split=_bool(raw.get('isSplit'), False),
      mw_allocation=optional_number(raw.get('mwAllocation')),
      tenant=_text(raw.get('tenant')),
      lease_value_m=optional_number(raw.get('leaseValueM')),
      lease_years=optional_number(raw.get('leaseYears')),
      lease_start=to_timestamp(raw.get('leaseStart')),
      noi_pct=optional_number(raw.get('noiPct')),
      noi_annual_m=optional_number(raw.get('noiAnnualM')),
      lease_structure=_text(raw.get('leaseStructure')),
      start_date=to_timestamp(raw.get('startDate')),
  )


def parse_building(raw: Mapping[str, Any]) -> Building:
  regulatory_risk = optional_number(raw.get('regulatoryRisk'))
  fidoodle = optional_number(raw.get('fidoodleFactor'))
  return Building(
      id=str(raw['id']),
      name=raw.get('name') or '',
      gross_mw=optional_number(raw.get('grossMw')) or 0.0,
      it_mw=optional_number(raw.get('itMw')),
      development_phase=_text(raw.get('developmentPhase')),
      grid=_text(raw.get('grid')),
      ownership_status=_text(raw.get('ownershipStatus')),
      datacenter_tier=_text(raw.get('datacenterTier')),
      energization_date=to_timestamp(raw.get('energizationDate')),
      regulatory_risk=1.0 if regulatory_risk is None else regulatory_risk,
      probability_override=optional_number(raw.get('probabilityOverride')),
      size_mult_override=optional_number(raw.get('sizeMultOverride')),
      power_auth_mult_override=optional_number(
          raw.get('powerAuthMultOverride')),
      ownership_mult_override=optional_number(raw.get('ownershipMultOverride')),
      tier_mult_override=optional_number(raw.get('tierMultOverride')),
      lease_struct_mult_override=optional_number(
          raw.get('leaseStructMultOverride')),
      time_value_override=optional_number(raw.get('timeValueOverride')),
      cap_rate_override=optional_number(raw.get('capRateOverride')),
      exit_cap_rate_override=optional_number(raw.get('exitCapRateOverride')),
      terminal_growth_override=optional_number(
          raw.get('terminalGrowthOverride')),
      fidoodle_factor=1.0 if fidoodle is None else fidoodle,
      include_in_valuation=_bool(raw.get('includeInValuation'), True),
      use_periods=tuple(
          parse_use_period(p) for p in raw.get('usePeriods') or []),
  )


def parse_company(raw: Mapping[str, Any]) -> Company:
  sites = []
  for site in raw.get('sites') or []:
    campuses = tuple(
        Campus(id=str(campus['id']),
               name=campus.get('name') or '',
               buildings=tuple(
                   parse_building(b) for b in campus.get('buildings') or []))
        for campus in site.get('campuses') or [])
    sites.append(
        Site(id=str(site['id']), name=site.get('name') or '',
             campuses=campuses))
  return Company(
      ticker=str(raw['ticker']),
      name=raw.get('name') or '',
      fd_shares_m=optional_number(raw.get('fdSharesM')),
      stock_price=optional_number(raw.get('stockPrice')),
      sites=tuple(sites),
  )


def _settings_map(raw: Any) -> Dict[str, Any]:
  '''Settings as a dict; a list of {key, value} rows is also accepted.'''
  if raw is None:
    return {}
  if isinstance(raw, Mapping):
    return dict(raw)
  if isinstance(raw, list):
    return {row['key']: row.get('value') for row in raw}
  raise ValueError(f'Unsupported settings format: {type(raw).__name__}')


class SnapshotStore(ValuationStore):
  """
  Cached ValuationStore over a JSON snapshot file.

  Loads and caches:
  - company hierarchy (archived companies dropped)
  - settings
  - net liquid assets and mining tables keyed by ticker
  """

  def __init__(self, path: Path):
    """
    Initialize store.

    Args:
      path: Path to the JSON snapshot
    """
    self.path = Path(path)
    self._raw: Optional[Dict[str, Any]] = None
    self._companies: Optional[List[Company]] = None

  def load(self) -> Dict[str, Any]:
    """
    Load and cache the raw snapshot.

    Raises:
      FileNotFoundError: If the snapshot does not exist
      ValueError: If the snapshot has no companies list
    """
    if self._raw is not None:
      return self._raw

    if not self.path.exists():
      raise FileNotFoundError(f'Snapshot not found: {self.path}')

    with self.path.open(encoding='utf-8') as f:
      raw = json.load(f)
    if not isinstance(raw, dict) or not isinstance(raw.get('companies'),
                                                   list):
      raise ValueError(f'Snapshot {self.path} has no "companies" list')

    self._raw = raw
    logger.debug('Loaded snapshot %s (%d companies)', self.path,
                 len(raw['companies']))
    return raw

  def fetch_companies(self) -> List[Company]:
    if self._companies is not None:
      return self._companies
    companies = []
    for raw in self.load()['companies']:
      if _bool(raw.get('archived'), False):
        continue
      companies.append(parse_company(raw))
    self._companies = companies
    return companies

  def fetch_settings(self) -> Dict[str, Any]:
    return _settings_map(self.load().get('settings'))

  def fetch_mining_valuation(self, ticker: str) -> Optional[MiningValuation]:
    row = self._find_row('miningValuations', ticker)
    if row is None:
      return None
    return MiningValuation(
        ticker=ticker,
        hashrate_eh=optional_number(row.get('hashrateEh')),
        efficiency_jth=optional_number(row.get('efficiencyJth')),
        power_cost_kwh=optional_number(row.get('powerCostKwh')),
        hosted_mw=optional_number(row.get('hostedMw')),
    )

  def fetch_net_liquid(self, ticker: str) -> Optional[NetLiquidAssets]:
    row = self._find_row('netLiquidAssets', ticker)
    if row is None:
      return None
    return NetLiquidAssets(
        ticker=ticker,
        cash_m=optional_number(row.get('cashM')),
        btc_count=optional_number(row.get('btcCount')),
        eth_count=optional_number(row.get('ethCount')),
        total_debt_m=optional_number(row.get('totalDebtM')),
    )

  def fetch_building(self, building_id: str) -> Optional[BuildingRecord]:
    for company in self.fetch_companies():
      for site in company.sites:
        for campus in site.campuses:
          for building in campus.buildings:
            if building.id == building_id:
              return BuildingRecord(company=company,
                                    site=site,
                                    campus=campus,
                                    building=building)
    return None

  def clear_cache(self) -> None:
    """Clear all cached data."""
    self._raw = None
    self._companies = None

  def _find_row(self, table: str, ticker: str) -> Optional[Mapping[str, Any]]:
    for row in self.load().get(table) or []:
      if str(row.get('ticker', '')).upper() == ticker.upper():
        return row
    return None
