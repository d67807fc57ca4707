"""Submission Portal.

Backend and client for the project/startup submission portal. Owners draft and
submit projects and startups; moderators approve, feature, reject or request
changes on them.

Modules:
    - moderation: Status state machine, authoritative transitions, REST API
    - client: HTTP wrapper and session-scoped submission store
"""

__version__ = "0.1.0"
