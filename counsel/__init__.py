"""
Counsel - business-state engine for a law-firm community bot.

Tracks staff lifecycles (hire, promote, demote, fire) and case lifecycles
(pending -> in_progress -> closed) behind a permission gate, a per-subject
operation queue and a transactional unit of work with compensating actions.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
