"""
Speech engine and media player adapters.

The playback controller only talks to the two abstract classes below. Both
are event driven: ``speak``/``play`` return immediately and report progress
through the callbacks, which may fire on any thread.
"""
import logging
import queue
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

import pygame
import pyttsx3

from .errors import MediaError, SpeechError
from .voices import Voice

logger = logging.getLogger(__name__)


@dataclass
class Utterance:
    text: str
    lang: str
    voice: Optional[Voice] = None
    rate: float = 1.0
    volume: float = 1.0


class SpeechEngine(ABC):
    name = 'base'

    @abstractmethod
    def get_voices(self) -> List[Voice]:
        """Voices known right now; may be empty until the engine warms up."""

    @abstractmethod
    def speak(
        self,
        utterance: Utterance,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        """Queue one utterance. Exactly one of on_end/on_error fires per call."""

    @abstractmethod
    def cancel(self) -> None:
        """Drop the current utterance."""

    def resume(self) -> None:
        """Re-assert the playing state; engines that never stall ignore it."""


class MediaPlayer(ABC):
    name = 'base'

    @abstractmethod
    def play(
        self,
        source: str,
        on_ready: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        """Start playing a stored audio file or URL."""

    @abstractmethod
    def stop(self) -> None:
        """Stop playback; a no-op when nothing is playing."""


class NullSpeechEngine(SpeechEngine):
    name = 'null'

    def get_voices(self):
        return []

    def speak(self, utterance, on_start, on_end, on_error):
        on_error(SpeechError('Speech synthesis not supported'))

    def cancel(self):
        pass


class NullMediaPlayer(MediaPlayer):
    name = 'null'

    def play(self, source, on_ready, on_end, on_error):
        on_error(MediaError('Audio playback not supported'))

    def stop(self):
        pass


def _decode_language(languages) -> str:
    # espeak reports b'\x05en-us', nsss reports 'en_US'
    for lang in languages or []:
        if isinstance(lang, (bytes, bytearray)):
            lang = bytes(lang).decode('utf-8', errors='ignore')
        lang = ''.join(ch for ch in str(lang) if ch.isprintable()).strip()
        if lang:
            return lang
    return ''


class Pyttsx3Engine(SpeechEngine):
    """
    Offline synthesis through pyttsx3 (espeak, SAPI5 or NSSpeechSynthesizer).

    The driver is not thread safe. One long-lived loop thread owns it:
    ``speak`` only queues, and the loop sets properties, says and runs
    ``runAndWait`` for one utterance at a time.
    """

    name = 'pyttsx3'

    def __init__(self, driver_name=None):
        self._engine = pyttsx3.init(driver_name)
        self._base_rate = self._engine.getProperty('rate') or 200
        self._callbacks = {}
        self._lock = threading.Lock()
        self._driver_lock = threading.Lock()
        self._queue = queue.Queue()
        self._engine.connect('started-utterance', self._on_started)
        self._engine.connect('finished-utterance', self._on_finished)
        self._engine.connect('error', self._on_error)
        self._thread = threading.Thread(target=self._loop, name='pyttsx3-loop', daemon=True)
        self._thread.start()

    def get_voices(self):
        with self._driver_lock:
            voices = self._engine.getProperty('voices') or []
        return [
            Voice(id=v.id, name=v.name or '', lang=_decode_language(v.languages))
            for v in voices
        ]

    def speak(self, utterance, on_start, on_end, on_error):
        name = uuid.uuid4().hex
        with self._lock:
            self._callbacks[name] = (on_start, on_end, on_error)
        self._queue.put((name, utterance))

    def _loop(self):
        while True:
            name, utterance = self._queue.get()
            with self._lock:
                if name not in self._callbacks:
                    continue
            try:
                with self._driver_lock:
                    if utterance.voice is not None:
                        self._engine.setProperty('voice', utterance.voice.id)
                    self._engine.setProperty('rate', int(self._base_rate * utterance.rate))
                    self._engine.setProperty('volume', utterance.volume)
                    self._engine.say(utterance.text, name)
                    self._engine.runAndWait()
            except (RuntimeError, OSError) as e:
                logger.warning('pyttsx3 failed to speak: %s', e)
                self._on_error(name, e)
                continue
            # stop() ends the run loop without a finished-utterance event
            self._on_finished(name)

    def _pop(self, name):
        with self._lock:
            return self._callbacks.pop(name, None)

    def _on_started(self, name):
        with self._lock:
            callbacks = self._callbacks.get(name)
        if callbacks is not None:
            callbacks[0]()

    def _on_finished(self, name, completed=True):
        callbacks = self._pop(name)
        if callbacks is not None:
            callbacks[1]()

    def _on_error(self, name, exception):
        callbacks = self._pop(name)
        if callbacks is not None:
            callbacks[2](SpeechError(str(exception)))

    def cancel(self):
        while True:
            try:
                name, _ = self._queue.get_nowait()
            except queue.Empty:
                break
            self._on_finished(name)
        self._engine.stop()


class PygameMediaPlayer(MediaPlayer):
    name = 'pygame'

    def __init__(self, poll_interval=0.1):
        self.poll_interval = poll_interval
        self._watch_stop = None

    def play(self, source, on_ready, on_end, on_error):
        self.stop()
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init()
            pygame.mixer.music.load(source)
            pygame.mixer.music.play()
        except pygame.error as e:
            on_error(MediaError(f'Cannot play {source}: {e}'))
            return
        on_ready()
        stop_event = threading.Event()
        self._watch_stop = stop_event
        threading.Thread(
            target=self._watch, args=(stop_event, on_end),
            name='pygame-watch', daemon=True
        ).start()

    def _watch(self, stop_event, on_end):
        while not stop_event.wait(self.poll_interval):
            if not pygame.mixer.music.get_busy():
                on_end()
                return

    def stop(self):
        if self._watch_stop is not None:
            self._watch_stop.set()
            self._watch_stop = None
        if pygame.mixer.get_init():
            pygame.mixer.music.stop()


def create_engine(name) -> SpeechEngine:
    # VRUKSHAVEDA_SPEECH_ENGINE=null arrives JSON-decoded as None
    if name is None or name == 'null':
        return NullSpeechEngine()
    if name == 'pyttsx3':
        try:
            return Pyttsx3Engine()
        except (RuntimeError, OSError) as e:
            logger.warning('pyttsx3 driver unavailable, speech disabled: %s', e)
            return NullSpeechEngine()
    raise ValueError(f'Unknown speech engine {name!r}')


def create_media_player(name) -> MediaPlayer:
    if name is None or name == 'null':
        return NullMediaPlayer()
    if name == 'pygame':
        return PygameMediaPlayer()
    raise ValueError(f'Unknown media player {name!r}')
