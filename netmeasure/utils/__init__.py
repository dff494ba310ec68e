from .logging_utils import configure_logging, log_exception
from .validation import canonicalize, is_missing, obj_canonicalized_hash, unique_iter

__all__ = [
    "configure_logging",
    "log_exception",
    "canonicalize",
    "is_missing",
    "obj_canonicalized_hash",
    "unique_iter",
]
