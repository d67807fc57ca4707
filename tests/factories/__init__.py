"""Test data factories for the Submission Portal."""

from tests.factories.submission_factory import SubmissionFactory
from tests.factories.user_factory import UserFactory, auth_headers

__all__ = [
    "SubmissionFactory",
    "UserFactory",
    "auth_headers",
]
