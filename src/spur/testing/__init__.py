"""Test utilities for spur applications::

    from spur.testing import TestClient
"""

from spur.testing.client import TestClient, TestResponse

__all__ = [
    "TestClient",
    "TestResponse",
]
