"""
Shared fixtures for agentflow tests: scripted generation services and agents
built on them.
"""

import asyncio

import pytest

from agentflow.agents import Agent


class ScriptedGenerator:
    """Generation stub that replays replies in order and records every prompt.

    Once the replies run out the last one is repeated.
    """

    def __init__(self, replies="ok", delay=0.0, error=None):
        self.replies = [replies] if isinstance(replies, str) else list(replies)
        self.delay = delay
        self.error = error
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        index = min(len(self.prompts), len(self.replies)) - 1
        return self.replies[index]


@pytest.fixture
def make_agent():
    """Build an agent whose generation service is a ScriptedGenerator."""

    def _make(agent_id, replies="ok", delay=0.0, error=None, **kwargs):
        return Agent(
            id=agent_id,
            role=f"{agent_id} role",
            goal=f"{agent_id} goal",
            generator=ScriptedGenerator(replies, delay=delay, error=error),
            **kwargs,
        )

    return _make
