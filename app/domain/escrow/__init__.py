"""
Escrow bounded context: domain layer.

This module contains all domain logic for player-to-player trades:
- Trade session state machine (offers, readiness, acceptance, swap)
- Trade registry (one active session per actor)
- Inventory gateway port (ownership and escrow locks)
"""
