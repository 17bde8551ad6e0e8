"""
LLM gateway for contract analysis over an OpenAI-compatible chat completion API.
"""
import os
import logging
import time
from typing import Optional

import openai
from openai import OpenAI
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from analyzer.errors import GenerationError
from analyzer.services.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
TEMPERATURE = 0.3
# Premium analyses ask for several KB of JSON
MAX_OUTPUT_TOKENS = 8192
REQUEST_TIMEOUT = 120.0

TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)

# Initialize OpenAI client lazily
client: Optional[OpenAI] = None


def get_model_name() -> str:
    """Model identifier used for completions and recorded on each analysis."""
    return os.getenv('OPENAI_MODEL', DEFAULT_MODEL)


def _get_client() -> OpenAI:
    """Get or initialize OpenAI client."""
    global client
    if client is None:
        api_key = os.getenv('OPENAI_API_KEY')
        if not api_key:
            raise GenerationError("OPENAI_API_KEY environment variable not set")

        base_url = os.getenv('OPENAI_BASE_URL') or None
        client = OpenAI(api_key=api_key, base_url=base_url)
        logger.info(f"OpenAI client initialized (base_url={base_url or 'default'})")
    return client


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    reraise=True
)
def _call_llm(system_prompt: str, user_prompt: str, model: str) -> str:
    """
    Call the chat completion API with retry on transient provider errors.

    Returns:
        Content of the first choice, or "" when the provider returned none.
    """
    response = _get_client().chat.completions.create(
        model=model,
        messages=[
            {
                "role": "system",
                "content": system_prompt
            },
            {
                "role": "user",
                "content": user_prompt
            }
        ],
        temperature=TEMPERATURE,
        max_tokens=MAX_OUTPUT_TOKENS,
        timeout=REQUEST_TIMEOUT
    )

    if not response.choices:
        return ""
    return response.choices[0].message.content or ""


def chat_completion(prompt: str) -> str:
    """
    Send a fully assembled prompt to the model.

    Args:
        prompt: User message content.

    Returns:
        Raw text of the first completion choice.

    Raises:
        GenerationError: When the provider call fails after retries.
    """
    model = get_model_name()
    start_time = time.time()

    try:
        text = _call_llm(SYSTEM_PROMPT, prompt, model)
    except GenerationError:
        raise
    except openai.OpenAIError as e:
        duration = time.time() - start_time
        logger.error(
            f"LLM call failed: model={model}, duration={duration:.2f}s, "
            f"error={type(e).__name__} - {e}"
        )
        raise GenerationError(f"AI analysis service error: {type(e).__name__}") from e

    duration = time.time() - start_time
    logger.info(f"LLM call complete: model={model}, chars={len(text)}, duration={duration:.2f}s")
    return text
