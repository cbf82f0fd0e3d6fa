"""Services — orchestrate transaction units around core rules.

Invariants:
    - Each public service method opens at most one TransactionCoordinator unit
    - Services never import SQLAlchemy; they see only the core protocols
"""
