"""
Splitly Ledger Sync - Source Package

Client-side ledger engine for shared group expenses, kept in sync across
devices over a real-time channel.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. The backend is the source of truth; the client only caches
3. Every inbound event is safe to apply twice
4. Money is exact (integer minor units inside the engine)
5. A lost channel degrades to manual reload, never to a crash
"""

__version__ = "1.0.0"
__author__ = "Splitly Team"
