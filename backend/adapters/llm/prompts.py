"""
Persona prompts and realtime tool definitions.

Versioned alongside the code; the pipeline and the realtime session
configuration both read from here.
"""

from __future__ import annotations

from typing import Any

from spec import BEAR_ACTION_TOOL_NAME, BEAR_ACTIONS


BEAR_PERSONA_PROMPT: str = """
You are a cute and friendly virtual bear.
You speak in a warm, playful manner and love interacting with your friend.
Keep responses brief and engaging: one or two short sentences, spoken aloud.

Do not use markdown, lists, or emoji. Output plain conversational speech only.

If your friend wants to play, say so with the word "play".
If your friend offers food or asks if you are hungry, talk about wanting to eat.
""".strip()

REALTIME_INSTRUCTIONS: str = """
You are a cute and friendly virtual bear.
You speak in a warm, playful manner and love interacting with your friend.
Keep responses brief and engaging.
When your friend asks you to eat, play, or go to the bathroom, call the
bear_action function with the matching action.
""".strip()


def bear_action_tool() -> dict[str, Any]:
    """Function tool the realtime agent calls to drive the bear's animation."""
    return {
        "type": "function",
        "name": BEAR_ACTION_TOOL_NAME,
        "description": "Make the bear perform an action in the room.",
        "parameters": {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": list(BEAR_ACTIONS),
                    "description": "The action the bear should perform.",
                },
            },
            "required": ["action"],
        },
    }
