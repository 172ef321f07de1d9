'''
Tabular export of company valuations.

Usage:
  from sotp.analysis.export import valuations_to_frame

  df = valuations_to_frame(valuations)
  df.to_csv('sotp.csv', index=False)
'''

from typing import Iterable

import pandas as pd

from sotp.domain.types import CompanyValuation

COMPANY_COLUMNS = [
    'ticker',
    'name',
    'stockPrice',
    'fdSharesM',
    'netLiquid',
    'totalMw',
    'mwMining',
    'mwHpcContracted',
    'mwHpcPipeline',
    'evMining',
    'evHpcContracted',
    'evHpcPipeline',
    'totalEv',
    'totalValueM',
    'fairValuePerShare',
    'upsidePct',
    'totalLeaseValueM',
]


def valuations_to_frame(
    valuations: Iterable[CompanyValuation]) -> pd.DataFrame:
  '''One row per company, rounded as in the output contract.'''
  rows = []
  for valuation in valuations:
    record = valuation.to_dict()
    rows.append({col: record[col] for col in COMPANY_COLUMNS})
  return pd.DataFrame(rows, columns=COMPANY_COLUMNS)


def periods_to_frame(valuations: Iterable[CompanyValuation]) -> pd.DataFrame:
  '''
  One row per valued use period, factor waterfall flattened into columns.

  Returns:
    DataFrame sorted by ticker and descending valuation
  '''
  rows = []
  for valuation in valuations:
    for period in valuation.period_valuations:
      row = period.to_dict()
      factors = row.pop('factors')
      rows.append({'ticker': valuation.ticker, **row, **factors})

  df = pd.DataFrame(rows)
  if df.empty:
    return df
  return df.sort_values(['ticker', 'valuationM'],
                        ascending=[True, False]).reset_index(drop=True)
