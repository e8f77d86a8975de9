"""Test utilities for strata services.

    from strata.testing import TestClient
"""

from strata.testing.client import TestClient, TestResponse

__all__ = ["TestClient", "TestResponse"]
