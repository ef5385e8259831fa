from .chunker import chunk_text
from .controller import PlaybackController, PlaybackState
from .engines import (
    MediaPlayer, SpeechEngine, Utterance, create_engine, create_media_player
)
from .errors import MediaError, SpeechError
from .voices import Voice, pick_voice, wait_for_voices

__all__ = [
    'chunk_text',
    'PlaybackController',
    'PlaybackState',
    'MediaPlayer',
    'SpeechEngine',
    'Utterance',
    'create_engine',
    'create_media_player',
    'MediaError',
    'SpeechError',
    'Voice',
    'pick_voice',
    'wait_for_voices',
]
