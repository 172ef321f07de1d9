'''
Sum-of-the-parts valuation for bitcoin miners and AI/HPC datacenters.

Each company is valued as the sum of its buildings' use periods (mining,
contracted HPC leases, uncontracted pipeline capacity), adjusted by a chain
of risk and context multipliers, plus net liquid assets and mining-table EV.

Usage:
  from sotp.data_loader import SnapshotStore
  from sotp.run import calculate_valuations

  result = calculate_valuations(SnapshotStore(Path('data/snapshot.json')))
'''
