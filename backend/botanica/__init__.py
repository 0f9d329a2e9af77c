"""
Botanica Backend — Application Package Initializer
===================================================

What: Marks the `botanica` directory as a Python package.
Who:  Imported by uvicorn (botanica.main:app), Alembic, and pytest.

Architecture Note:
    The backend keeps a layered structure:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← stock rules, auth gate, images
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database / Storage / Identity     │  ← external systems behind adapters
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
