"""
Diploma Registry Services
=========================

Services:
- diploma: issue and retrieve ledger-anchored diploma documents
"""

__all__ = [
    "diploma",
]
