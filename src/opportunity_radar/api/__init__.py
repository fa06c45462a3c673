"""Opportunity Radar API layer.

This package holds the pieces the FastAPI application is assembled from:
- Request dependencies (settings, store, LLM clients)
- Scheduler trigger authentication
- Request body schemas
"""
