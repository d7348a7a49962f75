"""
Action Bank

A multi-user ledger service: users define deposit and withdrawal actions that
convert real-world units into a virtual currency, grouped into exchanges, with
role-based access control and per-user data isolation.
"""

__version__ = "1.0.0"
