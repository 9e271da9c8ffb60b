"""
Pot Balancer - Source Package

Keeps a Monzo current account on a target balance by sweeping excess into
a pot and covering deficits from it, one webhook at a time.

DESIGN PRINCIPLES:
1. The transaction amount is authoritative; re-reading balances is a fallback
2. At most one transfer per transaction, always with a dedupe id
3. Never fail on a short pot; move what is there
4. Dry run decides everything and moves nothing
"""

__version__ = "1.0.0"
__author__ = "Pot Balancer Team"
