"""
Tool-calling generation loop on top of an OpenAI-compatible client.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from .openai_client import LLMCompletionClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 3


class ToolCallingGenerator:
    """
    Generate text while letting the model call tools.

    The agent's tools are advertised as OpenAI function tools. Each round the
    requested calls are executed through the tool registry and their results
    are fed back to the model. After ``max_tool_rounds`` rounds the model is
    asked for a final answer without tools.

    The registry only needs ``get_tool(name)`` and ``async execute(name, params)``.
    """

    def __init__(
        self,
        client: LLMCompletionClient,
        registry,
        tool_names: Sequence[str],
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        model: Optional[str] = None,
    ):
        self.client = client
        self.registry = registry
        self.tool_names = list(tool_names)
        self.max_tool_rounds = max_tool_rounds
        self.model = model

    def tool_specs(self) -> List[Dict[str, Any]]:
        specs = []
        for name in self.tool_names:
            tool = self.registry.get_tool(name)
            if tool is None:
                logger.warning(f"Tool '{name}' is not registered; not offering it")
                continue
            specs.append(
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.input_schema,
                    },
                }
            )
        return specs

    async def generate(self, prompt: str) -> str:
        tools = self.tool_specs()
        if not tools:
            return await self.client.generate(prompt, model=self.model)

        messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]
        for round_index in range(self.max_tool_rounds):
            response = await self.client.completion(
                messages, model=self.model, tools=tools
            )
            message = response["choices"][0]["message"]
            tool_calls = message.get("tool_calls") or []
            if not tool_calls:
                return message.get("content") or ""

            logger.info(
                f"Tool round {round_index + 1}/{self.max_tool_rounds}: "
                f"{[call['function']['name'] for call in tool_calls]}"
            )
            messages.append(
                {
                    "role": "assistant",
                    "content": message.get("content") or "",
                    "tool_calls": [
                        {
                            "id": call["id"],
                            "type": "function",
                            "function": {
                                "name": call["function"]["name"],
                                "arguments": call["function"].get("arguments") or "{}",
                            },
                        }
                        for call in tool_calls
                    ],
                }
            )
            for call in tool_calls:
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call["id"],
                        "content": await self._run_tool(call["function"]),
                    }
                )

        logger.warning(
            f"Reached {self.max_tool_rounds} tool rounds; asking for a final answer"
        )
        messages.append(
            {
                "role": "user",
                "content": "Use the tool results above to give your final answer now.",
            }
        )
        return self.client.response_text(
            await self.client.completion(messages, model=self.model)
        )

    async def _run_tool(self, function: Dict[str, Any]) -> str:
        """Execute one call; failures are reported back to the model as text."""
        name = function["name"]
        try:
            arguments = json.loads(function.get("arguments") or "{}")
            return await self.registry.execute(name, arguments)
        except (json.JSONDecodeError, KeyError, ValueError, OSError, RuntimeError) as e:
            logger.warning(f"Tool '{name}' failed: {e}")
            return f"Error running tool '{name}': {e}"
