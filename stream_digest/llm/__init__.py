"""This package contain modules related to large language models (LLMs).
prompts.py : Contain instruction prompts
openai.py : Contain OpenAI client initialization
token_counter.py : Contain tiktoken based token counting
"""

from .prompts import _sitting_summary_prompt, _transcription_prompt
from .openai import init_llm_openai
from .token_counter import count_tokens, truncate_to_tokens


__all__ = [
    "_sitting_summary_prompt",
    "_transcription_prompt",
    "init_llm_openai",
    "count_tokens",
    "truncate_to_tokens",
]
