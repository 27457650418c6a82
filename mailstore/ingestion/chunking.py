"""Word-based chunking of email bodies."""

from typing import List

DEFAULT_CHUNK_SIZE = 2000  # characters


def split_into_chunks(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """Split *text* into ordered chunks of at most *chunk_size* characters.

    Words are taken in order and joined with single spaces. A word that would
    push the current chunk past *chunk_size* starts a new chunk; a word that is
    longer than *chunk_size* on its own becomes its own chunk, untruncated.
    Runs of whitespace collapse to one separator, so joining the chunks with
    ``" "`` gives back the whitespace-normalized text.

    Empty or whitespace-only text yields no chunks.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")

    chunks: List[str] = []
    current = ""

    for word in text.split():
        if current and len(current) + 1 + len(word) > chunk_size:
            chunks.append(current)
            current = word
        elif current:
            current = f"{current} {word}"
        else:
            current = word

    if current:
        chunks.append(current)

    return chunks
