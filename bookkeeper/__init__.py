"""
Bookkeeper - Source Package

A small-business bookkeeping dashboard: income and expense transactions,
clients, projects, calendar events and billing documents, kept in a hosted
Supabase project and summarised on a single dashboard.

DESIGN PRINCIPLES:
1. The hosted store owns every record and every aggregate
2. This package only reads, writes and renders
3. Failures are logged and reported, never fatal
4. Cached reference data is replaced wholesale, never patched
"""

__version__ = "1.0.0"
__author__ = "Bookkeeper Team"
