"""
Infrastructure layer package.

Contains concrete implementations (adapters) of the ports
defined in the domain layer. Here live the inventory stores, the trade
session store, the gateway timeout guard and the reaper scheduler.
"""
