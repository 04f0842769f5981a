"""
Region statistics, orchestration and session handling for the analysis.

Modules:
- reduction: region reducer (mean/min/max at a nominal scale)
- request: validated analysis parameters
- pipeline: stage orchestration for one request
- session: at-most-one-current-result trigger handling
- report: results and display parameters
- points: point extraction from masked rasters

Import from the submodules directly; this package does not re-export them
because the masking stage depends on the reducer.
"""
