import os
from typing import Optional

from dotenv import load_dotenv
from openai import OpenAI

from stream_digest.exceptions import ConfigurationError


def init_llm_openai(api_key: Optional[str] = None, base_url: Optional[str] = None) -> OpenAI:
    """
    Initialize OpenAI client.

    Args:
        api_key: API key; falls back to OPENAI_API_KEY from the environment
        base_url: Optional API base URL (proxies, compatible servers)

    Returns:
        OpenAI client instance

    Raises:
        ConfigurationError: If no API key is available.
    """
    if api_key is None:
        load_dotenv()
        api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY not found in environment variables.")
    return OpenAI(api_key=api_key, base_url=base_url)
