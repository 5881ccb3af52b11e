"""
coursecore
Curriculum composition, progress ledger and referential-integrity engine.
"""

__version__ = "1.0.0"
