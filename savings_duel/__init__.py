"""
Savings Duel - Source Package

A two-person spending contest. Each participant logs what they spend
per day; A's total is multiplied by a handicap before it is compared
with B's, and the side that spent less wins the day.

DESIGN PRINCIPLES:
1. Scoring is pure and recomputed from the whole ledger every time
2. A snapshot is applied whole or not at all
3. Invalid input never reaches the store
4. Every write attempt is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Savings Duel Team"
