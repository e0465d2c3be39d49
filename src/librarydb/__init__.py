"""
LibraryDB circulation server package.

Key Components:
- models: Pydantic models returned by every layer
- database: SQLAlchemy schema, session management and repositories
- services: the inventory ledger and the circulation engine
- config: configuration management with Pydantic v2
- tools / resources: the MCP surface
"""

__version__ = "0.1.0"
