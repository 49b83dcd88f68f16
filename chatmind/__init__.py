"""
ChatMind - AI Agents for Team Chat
==================================

The agent orchestration layer of a team-chat application. Four agents
share one pipeline:

- OrgBrain: answers questions about channels, messages and pinned documents
- ReplySuggestion: proposes three replies for a thread
- ToneAnalysis: scores the tone and impact of a draft message
- MeetingNotes: turns a thread into Markdown meeting notes

This package provides:
- Agent router, context aggregation, prompt building and response normalization
- An HTTP API (FastAPI) and a Slack front-end on top of the router
- A small HTTP client for calling the API from other services
"""

__version__ = "1.0.0"
