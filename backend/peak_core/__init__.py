"""Core logic for market peak analysis.

This package contains pure logic with no I/O dependencies (no database,
Redis, or network access): data models, series normalization, payload
formatting, completion parsing and schedule arithmetic. The service
layer in ``market_peak`` wires it to the outside world.
"""
