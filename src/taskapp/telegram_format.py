"""Telegram message formatting utilities."""

import telegramify_markdown

MAX_MESSAGE_LENGTH = 4000


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split text into Telegram-sized chunks, preferring line boundaries."""
    chunks = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


async def send_markdown(message, text: str):
    """Reply with markdown text, converted to MarkdownV2."""
    converted = telegramify_markdown.markdownify(text)
    for chunk in split_message(converted):
        await message.reply_text(chunk, parse_mode="MarkdownV2")
