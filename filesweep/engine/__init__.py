"""Engine components orchestrating enumerate → search → download → dedup."""

from .client import (
    AbuseDetectedError,
    RateLimitExceededError,
    SearchAPIError,
    SearchClient,
    SearchItem,
    SearchPageResult,
    to_raw_url,
)
from .dedup import DedupStore, OfferResult
from .fetcher import PageFetcher
from .params import (
    OrderMode,
    QueryParameterization,
    SortMode,
    count_parameterizations,
    enumerate_parameterizations,
)
from .rate_window import RateLimit
from .thread_pool import ThreadPoolManager

__all__ = [
    "AbuseDetectedError",
    "DedupStore",
    "OfferResult",
    "OrderMode",
    "PageFetcher",
    "QueryParameterization",
    "RateLimit",
    "RateLimitExceededError",
    "SearchAPIError",
    "SearchClient",
    "SearchItem",
    "SearchPageResult",
    "SortMode",
    "ThreadPoolManager",
    "count_parameterizations",
    "enumerate_parameterizations",
    "to_raw_url",
]
