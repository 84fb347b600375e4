"""
Database package: engine, session factory, table models and migrations.
"""
