"""
Payrun Kernel

A priority-ordered slot scheduler and settlement engine:
- Backlog of work owed to people, ranked by operator priority
- Fixed-capacity payment board, auto-filled from the backlog
- Single-slot settlement and atomic whole-board approval
- Append-only payment history reconciled against balances
"""

__version__ = "0.1.0"
