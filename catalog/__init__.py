"""
Catalog service package.

This package provides a FastAPI application for creating, listing, editing
and deleting catalog items stored in MongoDB, together with the connection
manager that owns the process-wide database handle.
"""
