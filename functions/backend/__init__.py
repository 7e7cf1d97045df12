"""
Backend package for the Partage functions.

A FastAPI application that serves the payment, legal document, order close
and outgoing email functions on top of database, storage and auth
abstractions, so the same handlers run against Supabase or in memory.
"""
