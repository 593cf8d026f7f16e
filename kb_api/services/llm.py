from __future__ import annotations

from typing import Callable, TypeVar

from instructor import from_openai
from pydantic import BaseModel
import openai

from ..config import settings

ResponseT = TypeVar("ResponseT", bound=BaseModel)

SYSTEM = (
    "You are a knowledge-base editor for a customer support team. "
    "Answer only with JSON that matches the requested schema."
)

# (prompt, response_model) -> parsed response; swapped out in tests
LLMInvoker = Callable[[str, type[ResponseT]], ResponseT]


def invoke_llm(prompt: str, response_model: type[ResponseT], *, system: str | None = None) -> ResponseT:
    client = from_openai(openai.OpenAI())
    return client.chat.completions.create(
        model=settings.openai_model,
        response_model=response_model,
        messages=[
            {"role": "system", "content": system or SYSTEM},
            {"role": "user", "content": prompt},
        ],
        temperature=settings.llm_temperature,
    )


def as_response(value: object, response_model: type[ResponseT]) -> ResponseT:
    """Coerce an invoker's return value (model or plain mapping) into ``response_model``."""
    if isinstance(value, response_model):
        return value
    return response_model.model_validate(value)
