"""
Mongo View query guard and resilient cache.

- application: query safety validator and the FastAPI inspection surface
- infrastructure: resilient cache with Redis and in-process backends
- core: configuration, logging, exceptions and interfaces
"""

__version__ = "1.0.0"
