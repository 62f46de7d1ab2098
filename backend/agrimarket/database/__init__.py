"""
Database package initialization.

Submodules:
- base: declarative base and mixins
- connection: async engine and session management
- models: ORM models for produce, orders and negotiations
"""

__all__ = []
