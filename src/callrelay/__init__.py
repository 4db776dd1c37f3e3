"""callrelay - Call recordings to reviewed tracker issues.

This package receives call-recording webhooks, extracts action items with an
LLM, routes them through a per-item Slack approval workflow and files the
approved items as Linear issues, archiving transcripts to GitHub on the way.
"""

__version__ = "0.1.0"
