"""URL acquisition package interfaces."""

from .config import UrlLoadOptions
from .loader import UrlLoader, check_url
from .models import BatchLoadResult, PageMeta, UrlCheck, UrlLoadResult

__all__ = [
    "BatchLoadResult",
    "PageMeta",
    "UrlCheck",
    "UrlLoadOptions",
    "UrlLoadResult",
    "UrlLoader",
    "check_url",
]
