"""
SkyStage Data Layer
===================

Provider-agnostic data access for the SkyStage catalog and booking
application. The same repositories run against SQLite, PostgreSQL or
Supabase, selected by ``DATABASE_PROVIDER``.
"""

__version__ = "1.0.0"
