"""
Infrastructure adapters for the escrow bounded context.

Each adapter implements a domain port (ABC) and connects to
external systems: the inventory store, the session database,
and the background scheduler driving the expiry reaper.
"""
