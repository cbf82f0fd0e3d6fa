"""Core — pure domain types, pairing rules and the error hierarchy.

Invariants:
    - Nothing in core performs IO or imports SQLAlchemy / FastAPI
    - Shell modules (infrastructure, services, api) depend on core, never the reverse
"""
