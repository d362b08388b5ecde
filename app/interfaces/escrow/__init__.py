"""
HTTP interface for the escrow bounded context.
"""
