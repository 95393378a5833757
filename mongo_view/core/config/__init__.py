"""
Configuration Module

Centralized, type-safe configuration management for the query guard and the
resilient cache.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Thresholds, weights, block-lists and enums

Usage:
------
```python
from mongo_view.core.config import get_settings
from mongo_view.core.config.constants import BackendState, PerformanceRating

settings = get_settings()
prefix = settings.cache.CACHE_KEY_PREFIX
```

Environment Variables:
---------------------
```bash
# Cache
ENABLE_CACHING=true
REDIS_URL=redis://localhost:6379/0
CACHE_DEFAULT_TTL=3600
CACHE_KEY_PREFIX=mongo_view:ai:

# Logging
LOG_LEVEL=INFO
LOG_FORMAT=json
```

Testing:
-------
```python
import os
from mongo_view.core.config import reload_settings

os.environ["REDIS_URL"] = ""
settings = reload_settings()
assert settings.redis.REDIS_URL == ""
```
"""

from mongo_view.core.config.settings import Settings, get_settings, reload_settings

__all__ = ["Settings", "get_settings", "reload_settings"]
