"""
Infrastructure layer for the time ledger.

Contains the implementation details behind the domain contracts:
- Database (SQLAlchemy, Alembic migrations)
- Repositories and entity mappers
- Authentication (JWT bearer tokens)
- Web layer (FastAPI routers and middleware)
"""
