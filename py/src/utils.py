# Utility functions for handing results to a chat transport.
import logging

import config
import discord

log = logging.getLogger(__name__)


# Displayed values may contain markdown characters (strings, `*` in
# descriptions); escape them before they land in bold text.
def escape(text):
    return discord.utils.escape_markdown(text)


# Enclose `text` in a backticked code span, or a block if `big`.
# A zero-width space follows every backtick in `text` so user input can
# never close the span early.
def codeblock(text, big=False):
    inner = str(text).replace("`", "`" + config.INVISIBLE_SPACE)
    if inner and inner[0] == "`":
        inner = config.INVISIBLE_SPACE + inner
    if big:
        return f"```{inner}```"
    return f"``{inner}``"


# Cut `text` down to what fits in a single message.
def truncate(text: str, limit: int = config.MAX_MESSAGE_LENGTH) -> str:
    if len(text) <= limit:
        return text
    cutoff = len(text) - limit
    log.info(f"Truncating message by {cutoff} characters.")
    return text[:limit] + f" ... (message too long, truncated {cutoff} characters.)"
