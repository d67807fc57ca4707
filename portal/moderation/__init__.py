"""Submission moderation workflow."""
