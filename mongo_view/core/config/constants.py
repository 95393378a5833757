"""
System Constants and Enumerations

This module defines system-wide constants used by the query guard and the
resilient cache.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for thresholds, weights and block-lists
- Type-safe enums for state and rating labels
- Heuristic weights live here rather than as literals inside the analyzers,
  but their values are part of the observable contract: callers branch on
  the performance labels, so changing a number here changes behavior.

Author: System Architect
Date: 2025-12-05
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Processing stages used in structured log events.

    Format: {PREFIX}.{SEQUENCE}_{DESCRIPTIVE_NAME}
    - Q: query guard (validation, sanitizing, estimation)
    - C: cache (backend selection, operations, failover)
    """

    INITIALIZATION = "0.0_INITIALIZATION"

    QUERY_VALIDATION = "Q.1_QUERY_VALIDATION"
    QUERY_SANITIZE = "Q.2_QUERY_SANITIZE"
    QUERY_ESTIMATE = "Q.3_QUERY_ESTIMATE"

    CACHE_PROBE = "C.0_BACKEND_PROBE"
    CACHE_LOOKUP = "C.1_CACHE_LOOKUP"
    CACHE_POPULATE = "C.2_CACHE_POPULATE"
    CACHE_INVALIDATE = "C.3_CACHE_INVALIDATE"
    CACHE_FAILOVER = "C.4_BACKEND_FAILOVER"
    CACHE_SHUTDOWN = "C.5_CACHE_SHUTDOWN"


# ============================================================================
# Cache Backend States
# ============================================================================


class BackendState(str, Enum):
    """
    Backend selection states of the resilient cache.

    UNINITIALIZED: constructed, no probe yet
    PROBING: liveness probe against the remote store in flight
    REMOTE_ACTIVE: all calls routed to the remote store
    LOCAL_FALLBACK: all calls routed to the in-process store (terminal)
    """

    UNINITIALIZED = "uninitialized"
    PROBING = "probing"
    REMOTE_ACTIVE = "remote_active"
    LOCAL_FALLBACK = "local_fallback"


class PerformanceRating(str, Enum):
    """
    Coarse query performance estimate.

    Inherits from str so that callers can compare with plain labels:
    PerformanceRating.GOOD == "good"
    """

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


# ============================================================================
# Query Guard: Allow / Block Lists
# ============================================================================

ALLOWED_OPERATIONS: tuple[str, ...] = (
    "find",
    "aggregate",
    "count",
    "distinct",
    "countDocuments",
    "estimatedDocumentCount",
)

# Write/DDL verbs; matched as raw substrings of the serialized query
BLOCKED_OPERATIONS: tuple[str, ...] = (
    "drop",
    "remove",
    "delete",
    "deleteOne",
    "deleteMany",
    "update",
    "updateOne",
    "updateMany",
    "replaceOne",
    "insert",
    "insertOne",
    "insertMany",
    "createIndex",
    "dropIndex",
    "dropIndexes",
    "renameCollection",
    "createCollection",
    "dropCollection",
)

# Operators that write or mutate even inside an aggregation
DANGEROUS_OPERATORS: tuple[str, ...] = (
    "$out",
    "$merge",
    "$unset",
    "$set",
    "$push",
    "$pull",
    "$addToSet",
    "$pop",
    "$rename",
    "$inc",
    "$mul",
    "$min",
    "$max",
)

INDEX_FRIENDLY_FIELDS: tuple[str, ...] = ("_id", "id", "userId", "createdAt", "updatedAt")

# Stages weighted as expensive by the complexity score
HEAVY_PIPELINE_STAGES: tuple[str, ...] = ("$lookup", "$facet", "$graphLookup")

# ============================================================================
# Query Guard: Thresholds
# ============================================================================

# Complexity warning thresholds
MAX_PIPELINE_STAGES = 10
MAX_QUERY_DEPTH = 5
MAX_QUERY_CONDITIONS = 20

# Pipeline stage audit thresholds
MAX_LOOKUP_PIPELINE_STAGES = 5
MAX_GROUP_KEY_FIELDS = 5
MAX_GROUP_ACCUMULATORS = 10

# Result-size ceiling injected by sanitize()
DEFAULT_RESULT_LIMIT = 1000

# ============================================================================
# Query Guard: Performance Estimate Weights
# ============================================================================

PERF_DEPTH_THRESHOLD = 3
PERF_DEPTH_PENALTY = 2
PERF_CONDITIONS_THRESHOLD = 10
PERF_CONDITIONS_PENALTY = 2
PERF_INDEX_BONUS = 1
PERF_STAGE_WEIGHT = 0.5
PERF_LOOKUP_PENALTY = 2

# Upper bounds (inclusive) of each rating bucket; anything above is POOR
PERF_EXCELLENT_MAX = 1
PERF_GOOD_MAX = 3
PERF_FAIR_MAX = 5

# ============================================================================
# Cache
# ============================================================================

CACHE_DEFAULT_TTL = 3600  # 1 hour
CACHE_COMPRESSION_THRESHOLD = 1024  # serialized bytes
CACHE_PROBE_TIMEOUT = 2.0  # seconds
CACHE_LOCAL_BYTES_PER_KEY = 100  # size estimate for the local backend

# Reported by get_ttl() for entries that exist but never expire
NO_EXPIRY_TTL = 2**31 - 1

# Key layout inside the namespace
CACHE_TAG_SEGMENT = "tags:"
CACHE_VERSION_SEGMENT = "versions:"
COMPRESSED_MARKER = "_compressed"

# Health rules
CACHE_HEALTHY_MAX_ERRORS = 10
CACHE_HEALTHY_MIN_HIT_RATE = 10.0
CACHE_LOW_HIT_RATE = 20.0
CACHE_MANY_ERRORS = 5
CACHE_HIGH_TRAFFIC = 10000

# Batch size for SCAN-driven bulk deletes
CACHE_SCAN_BATCH_SIZE = 500

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
