"""
Agent System
============

The agent pipeline shared by all four agents:

    AgentRouter ──► ContextAggregator ──► Prompt Builder ──► LLMClient ──► Normalizer

This module provides:
- AgentRouter: validates requests and returns AgentEnvelopes
- ContextAggregator: gathers organizational context from an OrgStore
- LLMClient: single-attempt chat-completions client
- ToneMeter / Debouncer: debounced live tone analysis
"""

from chatmind.agent.context import ContextAggregator, ContextPolicy
from chatmind.agent.core import AgentRouter
from chatmind.agent.debounce import Debouncer, ToneMeter
from chatmind.agent.llm import LLMClient
from chatmind.agent.types import AgentEnvelope, AgentKind

__all__ = [
    "AgentEnvelope",
    "AgentKind",
    "AgentRouter",
    "ContextAggregator",
    "ContextPolicy",
    "Debouncer",
    "LLMClient",
    "ToneMeter",
]
