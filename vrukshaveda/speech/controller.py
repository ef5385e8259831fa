"""
Shloka playback controller.

One controller owns one speech engine and one media player. ``play`` starts a
worker thread that either streams the stored audio file or speaks the text
chunk by chunk; ``stop`` cancels whatever is in flight. Only one playback is
active at a time: every ``play`` first stops the previous one.

State changes and failures are reported to listeners as
``listener(event, payload)`` with ``event`` in ``{"state", "error"}``.
"""
import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

from .chunker import DEFAULT_MAX_LEN, chunk_text
from .engines import MediaPlayer, SpeechEngine, Utterance
from .errors import MediaError, SpeechError
from .voices import (
    VOICE_POLL_INTERVAL, VOICE_POLL_TIMEOUT, Voice, pick_voice, wait_for_voices
)

logger = logging.getLogger(__name__)

RESUME_NUDGE_INTERVAL = 0.25
MEDIA_READY_TIMEOUT = 10.0

TTS_UNAVAILABLE = 'Sanskrit TTS unavailable'


class PlaybackState(str, Enum):
    IDLE = 'idle'
    PLAYING = 'playing'
    STOPPING = 'stopping'


class ResumeNudge:
    """Calls ``resume`` every ``interval`` seconds until cancelled."""

    def __init__(self, resume: Callable[[], None], interval: float):
        self.interval = interval
        self._resume = resume
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name='tts-resume-nudge', daemon=True)

    def start(self):
        self._thread.start()

    def cancel(self):
        self._stopped.set()

    @property
    def active(self):
        return self._thread.is_alive() and not self._stopped.is_set()

    def _run(self):
        while not self._stopped.wait(self.interval):
            try:
                self._resume()
            except Exception as e:
                logger.debug('resume nudge failed: %s', e)


class _Session:
    """Bookkeeping for a single play request."""

    def __init__(self, text, audio_source, tag):
        self.text = text
        self.audio_source = audio_source
        self.tag = tag
        self.canceled = threading.Event()
        self.thread = None
        self._waiters = []
        self._lock = threading.Lock()

    def completion(self):
        """An event that fires on completion or when the session is cancelled."""
        event = threading.Event()
        with self._lock:
            if self.canceled.is_set():
                event.set()
            self._waiters.append(event)
        return event

    def cancel(self):
        with self._lock:
            self.canceled.set()
            for event in self._waiters:
                event.set()


class PlaybackController:

    def __init__(
        self,
        engine: SpeechEngine,
        media: Optional[MediaPlayer] = None,
        lang: str = 'sa-IN',
        voice_hint: str = 'sanskrit',
        rate: float = 0.9,
        volume: float = 1.0,
        max_chunk_len: int = DEFAULT_MAX_LEN,
        nudge_interval: float = RESUME_NUDGE_INTERVAL,
        voice_poll_interval: float = VOICE_POLL_INTERVAL,
        voice_timeout: float = VOICE_POLL_TIMEOUT,
        media_ready_timeout: float = MEDIA_READY_TIMEOUT,
    ):
        self.engine = engine
        self.media = media
        self.lang = lang
        self.voice_hint = voice_hint
        self.rate = rate
        self.volume = volume
        self.max_chunk_len = max_chunk_len
        self.nudge_interval = nudge_interval
        self.voice_poll_interval = voice_poll_interval
        self.voice_timeout = voice_timeout
        self.media_ready_timeout = media_ready_timeout

        self._lock = threading.RLock()
        self._state = PlaybackState.IDLE
        self._session: Optional[_Session] = None
        self._nudge: Optional[ResumeNudge] = None
        self._voice: Optional[Voice] = None
        self._voice_resolved = False
        self._listeners: List[Callable] = []

    # -- public API ---------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def tag(self):
        session = self._session
        return session.tag if session is not None else None

    @property
    def nudging(self) -> bool:
        nudge = self._nudge
        return nudge is not None and nudge.active

    def add_listener(self, listener):
        self._listeners.append(listener)

    def play(self, text: str, audio_source: Optional[str] = None, tag=None) -> bool:
        """Start playing; returns False when there is nothing to play."""
        text = (text or '').strip()
        with self._lock:
            self._stop_locked()
            if not text and not audio_source:
                self._notify('error', {
                    'title': 'Error', 'message': 'No text available to play', 'tag': tag,
                })
                return False

            session = _Session(text, audio_source, tag)
            self._session = session
            self._state = PlaybackState.PLAYING
            self._notify_state(tag)
            session.thread = threading.Thread(
                target=self._run, args=(session,), name='shloka-playback', daemon=True
            )
            session.thread.start()
        return True

    def stop(self):
        """Cancel the current playback. Safe to call when idle."""
        with self._lock:
            self._stop_locked()

    def _stop_locked(self):
        session = self._session
        if session is None:
            return
        self._state = PlaybackState.STOPPING
        self._notify_state(session.tag)
        session.cancel()
        self._clear_nudge()
        self._cancel_engines()
        self._session = None
        self._state = PlaybackState.IDLE
        self._notify_state(session.tag)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current worker exits. Returns True if it did."""
        session = self._session
        if session is None or session.thread is None:
            return True
        session.thread.join(timeout)
        return not session.thread.is_alive()

    def resolve_voice(self) -> Optional[Voice]:
        if not self._voice_resolved:
            voices = wait_for_voices(
                self.engine.get_voices, self.voice_poll_interval, self.voice_timeout
            )
            self._voice = pick_voice(voices, self.lang, self.voice_hint)
            self._voice_resolved = True
            if self._voice is None:
                logger.info('No %s voice installed, using engine default', self.lang)
            else:
                logger.info('Using voice %s (%s)', self._voice.name, self._voice.lang)
        return self._voice

    # -- worker ------------------------------------------------------------

    def _run(self, session: _Session):
        try:
            if session.audio_source and self.media is not None:
                if self._play_stored(session):
                    return
                if session.canceled.is_set():
                    return
                if not session.text:
                    raise SpeechError('Stored audio failed and there is no text to speak')
                logger.info('Falling back to speech synthesis for %s', session.tag)
            self._speak_chunks(session)
        except SpeechError as e:
            logger.warning('Shloka playback failed: %s', e)
            with self._lock:
                if self._session is session:
                    self._notify('error', {
                        'title': TTS_UNAVAILABLE,
                        'message': str(e),
                        'tag': session.tag,
                    })
        finally:
            with self._lock:
                if self._session is session:
                    self._clear_nudge()
                    self._session = None
                    self._state = PlaybackState.IDLE
                    self._notify_state(session.tag)

    def _play_stored(self, session: _Session) -> bool:
        """
        Stream the stored audio file. Returns True when playback ended
        normally (or was cancelled), False when the caller should fall back
        to synthesis.
        """
        ready = session.completion()
        done = session.completion()
        failures = []

        def on_error(error):
            failures.append(error)
            ready.set()
            done.set()

        with self._lock:
            if session.canceled.is_set():
                return True
            try:
                self.media.play(session.audio_source, ready.set, done.set, on_error)
            except MediaError as e:
                failures.append(e)

        if not failures and not ready.wait(self.media_ready_timeout):
            failures.append(MediaError(
                f'audio not ready after {self.media_ready_timeout:.0f}s'
            ))
        if not failures:
            done.wait()
        if session.canceled.is_set():
            return True
        if failures:
            logger.warning('Stored audio failed for %s: %s', session.tag, failures[0])
            with self._lock:
                if not session.canceled.is_set():
                    self.media.stop()
            return False
        return True

    def _speak_chunks(self, session: _Session):
        chunks = chunk_text(session.text, self.max_chunk_len)
        if not chunks:
            raise SpeechError('No text available to play')
        voice = self.resolve_voice()
        for chunk in chunks:
            done = session.completion()
            errors = []

            def on_error(error, errors=errors, done=done):
                errors.append(error)
                done.set()

            utterance = Utterance(
                text=chunk,
                lang=self.lang,
                voice=voice,
                rate=self.rate,
                volume=self.volume,
            )
            with self._lock:
                if session.canceled.is_set():
                    return
                self.engine.speak(
                    utterance,
                    lambda: self._start_nudge(session),
                    done.set,
                    on_error,
                )
            done.wait()
            with self._lock:
                if self._session is session:
                    self._clear_nudge()
            if session.canceled.is_set():
                return
            if errors:
                raise SpeechError(f'Speech synthesis failed: {errors[0]}')

    # -- helpers -----------------------------------------------------------

    def _start_nudge(self, session: _Session):
        with self._lock:
            if session.canceled.is_set() or self._session is not session:
                return
            self._clear_nudge()
            self._nudge = ResumeNudge(self.engine.resume, self.nudge_interval)
            self._nudge.start()

    def _clear_nudge(self):
        if self._nudge is not None:
            self._nudge.cancel()
            self._nudge = None

    def _cancel_engines(self):
        try:
            self.engine.cancel()
        except SpeechError as e:
            logger.warning('Could not cancel speech: %s', e)
        if self.media is not None:
            try:
                self.media.stop()
            except MediaError as e:
                logger.warning('Could not stop audio: %s', e)

    def _notify_state(self, tag, state=None):
        state = state or self._state
        self._notify('state', {'state': state.value, 'tag': tag})

    def _notify(self, event, payload):
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception('Playback listener failed on %s', event)
