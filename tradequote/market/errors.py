from __future__ import annotations


class NoProviderAvailable(RuntimeError):
    """Raised by find_all when no market provider yields any data."""
