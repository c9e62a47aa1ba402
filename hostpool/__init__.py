from .backends import Backend
from .backoff import BackoffStrategy, ExponentialBackoff
from .clock import Clock, MockClock, SystemClock
from .config import BackoffConfig, HostConfig, PoolSettings
from .errors import (
    DecodeError,
    NoHostAvailableError,
    PoolError,
    RequestError,
    ServiceUnavailableError,
)
from .ping import PingStats
from .pool import Decode, Pool, RequestOptions

__version__ = "0.1.0"

__all__ = [
    "Backend",
    "BackoffConfig",
    "BackoffStrategy",
    "Clock",
    "Decode",
    "DecodeError",
    "ExponentialBackoff",
    "HostConfig",
    "MockClock",
    "NoHostAvailableError",
    "PingStats",
    "Pool",
    "PoolError",
    "PoolSettings",
    "RequestError",
    "RequestOptions",
    "ServiceUnavailableError",
    "SystemClock",
]
