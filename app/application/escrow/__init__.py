"""
Application layer for the escrow bounded context.

Use cases coordinate the trade registry, trade sessions and the
inventory gateway port to fulfill each trade command.
No framework or infrastructure imports allowed.
"""
