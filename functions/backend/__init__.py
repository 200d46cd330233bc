"""
Backend package for the posts REST API.

This package provides a FastAPI application with a database abstraction so
the post store can run against a plain HTTP service instead of Firestore.
"""
