"""Pool state, slippage guards and the PoolInstance entry points.

PoolInstance lives in amm_engine.pool.instance and is re-exported from the
top-level package; importing it here would cycle through the curves.
"""
