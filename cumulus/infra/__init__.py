"""Internal machinery - throttling, serialization."""

from .serialization import deserialize, serialize
from .throttle import Limiter

__all__ = [
    "Limiter",
    "deserialize",
    "serialize",
]
