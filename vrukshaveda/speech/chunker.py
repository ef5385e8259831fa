import re
from typing import List

DEFAULT_MAX_LEN = 180

# Danda (।), double danda (॥) and Latin sentence enders
_SENTENCE_END = re.compile(r'(?<=[।॥.!?])\s+')
_WHITESPACE = re.compile(r'\s+')


def chunk_text(text: str, max_len: int = DEFAULT_MAX_LEN) -> List[str]:
    """
    Split text into pieces no longer than ``max_len`` characters.

    Whitespace runs are collapsed to single spaces first. Sentences are packed
    greedily into chunks; a sentence that alone exceeds ``max_len`` is cut at
    the length boundary. Apart from spaces, the chunks concatenate back to
    the input text.
    """
    if max_len < 1:
        raise ValueError('max_len must be positive')

    normalised = _WHITESPACE.sub(' ', text or '').strip()
    if not normalised:
        return []

    chunks = []
    buf = ''
    for sentence in _SENTENCE_END.split(normalised):
        candidate = f'{buf} {sentence}' if buf else sentence
        if len(candidate) <= max_len:
            buf = candidate
            continue
        if buf:
            chunks.append(buf)
        if len(sentence) <= max_len:
            buf = sentence
        else:
            for i in range(0, len(sentence), max_len):
                piece = sentence[i:i + max_len].strip()
                if piece:
                    chunks.append(piece)
            buf = ''
    if buf:
        chunks.append(buf)
    return chunks
