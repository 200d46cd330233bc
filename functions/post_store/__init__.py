"""
Client-side post store.

Keeps an in-memory list of blog posts in sync with a Firestore or REST
backend, falling back to a local-only list when no backend is usable.
"""
