"""Slack bot that posts open pull request digests on a schedule."""

__version__ = "1.0.0"
