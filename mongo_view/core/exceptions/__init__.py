"""
Exception Module

Structured exception hierarchy for the query guard and resilient cache.

Module Structure:
-----------------
- **base.py**: MongoViewError base class + ConfigurationError
- **cache.py**: Cache backend exceptions (Redis, local store, serialization)
- **validation.py**: Query and request validation exceptions

Usage:
------
```python
from mongo_view.core.exceptions import CacheConnectionError, QueryRejectedError
```

Author: System Architect
Date: 2025-12-08
"""

from mongo_view.core.exceptions.base import ConfigurationError, MongoViewError
from mongo_view.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
)
from mongo_view.core.exceptions.validation import (
    InvalidInputError,
    QueryRejectedError,
    ValidationError,
)

__all__ = [
    "MongoViewError",
    "ConfigurationError",
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    "ValidationError",
    "QueryRejectedError",
    "InvalidInputError",
]
