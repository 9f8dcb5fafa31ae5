"""Test utilities for sluice applications.

Provides an in-process ASGI test client::

    from sluice.testing import TestClient
"""

from sluice.testing.client import TestClient

__all__ = [
    "TestClient",
]
