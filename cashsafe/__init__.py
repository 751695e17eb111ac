"""
Cash Safe Reconciler - Source Package

Daily cash handling for a shop with two physical cash stores:
the front safe (daily operations) and the back safe (accumulated transfers).

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Fail early, fail visibly
3. No silent corrections (discrepancies are approved, not rewritten)
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Cash Safe Team"
