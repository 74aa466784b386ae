def _sitting_summary_prompt() -> str:
    """
    Returns the system prompt for summarizing a parliamentary sitting.
    Returns:
        Prompt string
    """
    return (
        "You are a parliamentary reporter. "
        "You receive the raw speech-to-text transcript of a recorded sitting of the "
        "National Assembly or Senate. The transcript may contain recognition errors, "
        "repeated phrases and missing punctuation. "
        "Write a concise, neutral digest in Markdown with these sections: "
        "'## Overview' (two to four sentences), "
        "'## Key Discussions' (bullets, naming the members who spoke when the transcript makes it clear), "
        "'## Bills and Motions' (bullets with the outcome when stated), "
        "'## Notable Quotes' (at most three, verbatim). "
        "Do not invent names, numbers or outcomes that are not in the transcript. "
        "If a section has no content, write 'None recorded.'"
    )


def _transcription_prompt(previous_text: str) -> str:
    """
    Returns the continuation prompt passed with the next audio chunk.

    Whisper only considers the final ~224 tokens of the prompt, so only the
    tail of the previous chunk is kept.
    """
    return previous_text[-1000:]
