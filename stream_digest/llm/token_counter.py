"""Token counting for the summarizer's context window check.

tiktoken's cl100k_base is close enough to the GPT-4o tokenizer to decide
whether a sitting transcript must be cut before it is sent.
"""

import functools

import tiktoken


DEFAULT_ENCODING = "cl100k_base"


@functools.lru_cache(maxsize=None)
def _get_encoding(encoding_name: str) -> tiktoken.Encoding:
    try:
        return tiktoken.get_encoding(encoding_name)
    except ValueError as e:
        raise ValueError(f"Invalid encoding name: {encoding_name}") from e


def count_tokens(text: str, encoding_name: str = DEFAULT_ENCODING) -> int:
    """Return the number of tokens in text.

    Raises:
        ValueError: If encoding_name is not a known tiktoken encoding.
    """
    return len(_get_encoding(encoding_name).encode(text))


def truncate_to_tokens(
    text: str, max_tokens: int, encoding_name: str = DEFAULT_ENCODING
) -> str:
    """Keep the first max_tokens tokens of text; shorter text is returned as is."""
    encoding = _get_encoding(encoding_name)
    tokens = encoding.encode(text)
    if len(tokens) <= max_tokens:
        return text
    return encoding.decode(tokens[:max_tokens])
