"""Generation adapter for StudyDesk.

The only module that talks to the language model. Everything it can fail
on (missing key, network/service errors, malformed JSON) is reported as a
single GenerationError so the services don't need to care why.
"""

import json
import logging

from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI

from .. import config
from ..errors import GenerationError

logger = logging.getLogger(__name__)


STRUCTURED_OUTPUT_INSTRUCTIONS = """

Respond with ONLY a JSON array of objects.
Do not include any other text, explanation, or markdown formatting outside of the JSON array."""


def create_llm(temperature: float) -> ChatOpenAI:
    """Create the chat model used for every generation call."""
    if not config.OPENAI_API_KEY:
        raise GenerationError("OPENAI_API_KEY not configured")
    return ChatOpenAI(
        model=config.OPENAI_MODEL,
        temperature=temperature,
        api_key=config.OPENAI_API_KEY,
    )


async def generate(prompt: str, expect_structured: bool = False) -> str:
    """Send a single prompt to the model and return its text.

    In structured mode the prompt is suffixed with JSON-only instructions
    and a lower temperature is used. The caller parses the returned text
    with parse_structured().
    """
    if expect_structured:
        prompt = prompt + STRUCTURED_OUTPUT_INSTRUCTIONS
        temperature = config.STRUCTURED_TEMPERATURE
    else:
        temperature = config.GENERATION_TEMPERATURE

    llm = create_llm(temperature)

    try:
        result = await llm.ainvoke(prompt)
    except Exception as e:
        logger.error(f"Generation call failed: {e}")
        raise GenerationError("Generation call failed") from e

    text = result.content if isinstance(result.content, str) else ""
    if not text.strip():
        raise GenerationError("Model returned an empty response")
    return text


async def converse(turns: list[BaseMessage]) -> tuple[str, str]:
    """Run one conversational turn.

    Args:
        turns: Messages oldest first, starting with the system prompt and
            ending with the new human message.

    Returns:
        (message_type, content) of the model's reply.
    """
    llm = create_llm(config.GENERATION_TEMPERATURE)

    try:
        reply = await llm.ainvoke(turns)
    except Exception as e:
        logger.error(f"Chat call failed: {e}")
        raise GenerationError("Chat call failed") from e

    content = reply.content if isinstance(reply.content, str) else ""
    if not content.strip():
        raise GenerationError("Model returned an empty response")
    return reply.type, content


def strip_code_fence(content: str) -> str:
    """Remove a markdown code block wrapped around the whole response."""
    content = content.strip()
    if content.startswith("```"):
        lines = content.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        content = "\n".join(lines).strip()
    return content


def parse_structured(text: str) -> list[dict]:
    """Parse a structured-mode response into a list of objects.

    No repair is attempted: anything that isn't a JSON array of objects
    is a GenerationError.
    """
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        logger.error(f"Structured response is not valid JSON: {e}")
        raise GenerationError("Model returned malformed JSON") from e

    if not isinstance(data, list):
        raise GenerationError(f"Expected a JSON array, got {type(data).__name__}")
    if not all(isinstance(item, dict) for item in data):
        raise GenerationError("Expected every array element to be an object")

    return data
