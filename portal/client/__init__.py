"""Python client for the portal API: HTTP wrapper and submission store."""

from portal.client.api_client import PortalClient
from portal.client.store import SubmissionStore

__all__ = ["PortalClient", "SubmissionStore"]
