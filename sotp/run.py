'''
SOTP valuation entrypoints.

This module provides the two calculation passes:
1. calculate_valuations: every non-archived company, rolled up into EV
   buckets, net liquid assets and fair value per share
2. get_building_detail: one building with every intermediate exposed

Each pass reads a snapshot of entities and settings from a ValuationStore,
resolves the factors once and computes purely in memory.

Usage (CLI):
  python -m sotp.run --snapshot data/snapshot.json \
    --output results/sotp.csv --periods-output results/periods.csv

  python -m sotp.run --snapshot data/snapshot.json --building-id b-42 -v

Usage (Python API):
  from sotp.data_loader import SnapshotStore
  from sotp.run import calculate_valuations

  result = calculate_valuations(SnapshotStore(Path('data/snapshot.json')))
  for row in result['valuations']:
    print(row['ticker'], row['fairValuePerShare'])
'''

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from sotp.analysis.building_detail import build_building_detail
from sotp.analysis.export import periods_to_frame
from sotp.analysis.export import valuations_to_frame
from sotp.config.resolver import FactorSet
from sotp.config.resolver import resolve_factors
from sotp.data_loader import SnapshotStore
from sotp.data_loader import ValuationStore
from sotp.domain.types import BuildingNotFoundError
from sotp.domain.types import CompanyValuation
from sotp.engine.company import value_company

logger = logging.getLogger(__name__)


def value_companies(
    store: ValuationStore,
    factors: FactorSet,
    now: Optional[pd.Timestamp] = None,
) -> List[CompanyValuation]:
  '''Value every company the store returns, in store order.'''
  valuations = []
  for company in store.fetch_companies():
    valuations.append(
        value_company(
            company,
            factors,
            net_liquid=store.fetch_net_liquid(company.ticker),
            mining=store.fetch_mining_valuation(company.ticker),
            now=now,
        ))
  return valuations


def calculate_valuations(
    store: ValuationStore,
    now: Optional[pd.Timestamp] = None,
) -> Dict[str, Any]:
  '''
  Run a full calculation pass.

  Args:
    store: Entity store
    now: Valuation date (default: current time)

  Returns:
    {'factors': merged factor map, 'valuations': [company dicts]}
  '''
  factors = resolve_factors(store.fetch_settings())
  valuations = value_companies(store, factors, now)
  logger.info('Valued %d companies', len(valuations))
  return {
      'factors': factors.to_dict(),
      'valuations': [v.to_dict() for v in valuations],
  }


def get_building_detail(
    store: ValuationStore,
    building_id: str,
    now: Optional[pd.Timestamp] = None,
) -> Dict[str, Any]:
  '''
  Recompute one building with every intermediate exposed.

  Raises:
    BuildingNotFoundError: If the store has no such building
  '''
  record = store.fetch_building(building_id)
  if record is None:
    raise BuildingNotFoundError(building_id)
  factors = resolve_factors(store.fetch_settings())
  return build_building_detail(record, factors, now)


def _log_summary(valuations: List[CompanyValuation]) -> None:
  separator = '=' * 70
  logger.info(separator)
  logger.info('%-8s %10s %10s %10s %10s %10s %10s', 'Ticker', 'NetLiq',
              'EV Mining', 'EV HPC', 'Pipeline', 'Total', 'FV/Share')
  for v in valuations:
    fair_value = v.fair_value_per_share
    logger.info('%-8s %10.1f %10.0f %10.0f %10.0f %10.0f %10s', v.ticker,
                v.net_liquid, v.ev_mining, v.ev_hpc_contracted,
                v.ev_hpc_pipeline, v.total_value_m,
                f'{fair_value:.2f}' if fair_value is not None else '-')
  logger.info(separator)


def main() -> None:
  '''CLI entrypoint.'''
  parser = argparse.ArgumentParser(
      description='Sum-of-the-parts valuation of miners and datacenters',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog=__doc__,
  )
  parser.add_argument('--snapshot',
                      type=Path,
                      required=True,
                      help='Path to the JSON entity snapshot')
  parser.add_argument('--building-id',
                      type=str,
                      help='Print the drill-down for one building')
  parser.add_argument('--as-of',
                      type=str,
                      help='Valuation date (YYYY-MM-DD, default: today)')
  parser.add_argument('--output',
                      type=Path,
                      help='Company-level CSV output path')
  parser.add_argument('--periods-output',
                      type=Path,
                      help='Use-period CSV output path')
  parser.add_argument('-v',
                      '--verbose',
                      action='store_true',
                      help='Verbose output')
  args = parser.parse_args()

  logging.basicConfig(
      level=logging.DEBUG if args.verbose else logging.INFO,
      format='%(asctime)s [%(levelname)s] %(message)s',
      datefmt='%Y-%m-%d %H:%M:%S',
  )

  store = SnapshotStore(args.snapshot)
  now = pd.Timestamp(args.as_of) if args.as_of else None

  if args.building_id:
    detail = get_building_detail(store, args.building_id, now)
    print(json.dumps(detail, indent=2, default=str))
    return

  factors = resolve_factors(store.fetch_settings())
  valuations = value_companies(store, factors, now)
  _log_summary(valuations)

  if args.output:
    args.output.parent.mkdir(parents=True, exist_ok=True)
    valuations_to_frame(valuations).to_csv(args.output, index=False)
    logger.info('Saved %d companies to %s', len(valuations), args.output)

  if args.periods_output:
    args.periods_output.parent.mkdir(parents=True, exist_ok=True)
    periods = periods_to_frame(valuations)
    periods.to_csv(args.periods_output, index=False)
    logger.info('Saved %d use periods to %s', len(periods),
                args.periods_output)


if __name__ == '__main__':
  main()
