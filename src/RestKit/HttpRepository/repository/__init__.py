"""Repository base class, dispatch table, and the concrete JSON repository."""

from .base import AbstractHttpRepository, failure_kind_for
from .dispatch import Dispatcher, VerbRoute, build_dispatch_table
from .json_api import JsonApiRepository, TokenProvider

__all__ = [
    "AbstractHttpRepository",
    "Dispatcher",
    "JsonApiRepository",
    "TokenProvider",
    "VerbRoute",
    "build_dispatch_table",
    "failure_kind_for",
]
