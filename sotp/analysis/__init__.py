'''
Drill-down and export utilities.

Note: To avoid RuntimeWarning when using -m flag, import directly:
  from sotp.analysis.building_detail import build_building_detail
  from sotp.analysis.export import valuations_to_frame
'''
