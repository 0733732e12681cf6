"""Core shared logic for indicators, signal generation, and tracking models.

This package contains pure business logic with no I/O dependencies
(no network, no database). The live service layer (scout_app/) feeds it
candles and ticks and owns all shared mutable state.
"""
