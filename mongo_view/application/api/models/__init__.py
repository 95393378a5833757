"""
API Models Package
==================

Pydantic models for API request/response validation.

ORGANIZATION:
-------------
- cache.py: Cache inspection request/response models
- query.py: Query guard request/response models
"""
