"""Live service layer: market data client, scanner, tracker and query API.

Owns all shared mutable state (active signals, performance records,
learning models) and all I/O. Business rules live in scout_core/.
"""
