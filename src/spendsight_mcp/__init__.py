"""
SpendSight MCP - expense ledger, category tree and CSV import over MCP.
"""

__version__ = "0.1.0"
