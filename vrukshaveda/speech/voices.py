import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

VOICE_POLL_INTERVAL = 0.1
VOICE_POLL_TIMEOUT = 3.0


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    lang: str = ''


def normalise_lang(lang: Optional[str]) -> str:
    return (lang or '').strip().lower().replace('_', '-')


def wait_for_voices(
    get_voices: Callable[[], List[Voice]],
    interval: float = VOICE_POLL_INTERVAL,
    timeout: float = VOICE_POLL_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> List[Voice]:
    """
    Poll ``get_voices`` until it returns something or ``timeout`` elapses.

    Engines may fill their voice list lazily, so an empty first answer is
    not final. An empty list after the timeout is returned as-is.
    """
    deadline = clock() + timeout
    voices = list(get_voices() or [])
    while not voices and clock() < deadline:
        sleep(interval)
        voices = list(get_voices() or [])
    if not voices:
        logger.info('No speech voices available after %.1fs', timeout)
    return voices


def pick_voice(voices: List[Voice], lang: str, name_hint: str = '') -> Optional[Voice]:
    """
    Choose a voice for ``lang``: exact locale, then language prefix, then a
    name containing ``name_hint``. Returns None when nothing matches.
    """
    target = normalise_lang(lang)
    base = target.split('-')[0]
    exact = {target, base}

    for voice in voices:
        if normalise_lang(voice.lang) in exact:
            return voice
    for voice in voices:
        if base and normalise_lang(voice.lang).startswith(base):
            return voice
    hint = name_hint.lower()
    if hint:
        for voice in voices:
            if hint in (voice.name or '').lower():
                return voice
    return None
