"""
DATABASE PACKAGE
================

  database - engine and session factory (init_db, check_connection).
  models   - SQLAlchemy ORM tables: ChatSession and Message.
"""
