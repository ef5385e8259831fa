import threading

import pytest

from vrukshaveda.speech import SpeechError, Utterance, engines


class FakeDriver(object):
    """Stands in for the object ``pyttsx3.init`` returns."""

    def __init__(self):
        self.handlers = {}
        self.props = {'rate': 200, 'voices': []}
        self.said = []
        self.loop_threads = []
        self.running = 0
        self.max_running = 0
        self.stop_calls = 0
        self.fail = None
        self.release = threading.Event()
        self.release.set()
        self._stop_requested = False
        self._pending = None

    def connect(self, topic, callback):
        self.handlers[topic] = callback

    def getProperty(self, name):
        return self.props.get(name)

    def setProperty(self, name, value):
        self.props[name] = value

    def say(self, text, name):
        self._pending = (text, name)

    def runAndWait(self):
        if self.fail is not None:
            raise self.fail
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        self.loop_threads.append(threading.current_thread())
        text, name = self._pending
        self.said.append(text)
        self.handlers['started-utterance'](name)
        self.release.wait(2)
        self.running -= 1
        if self._stop_requested:
            self._stop_requested = False
            return
        self.handlers['finished-utterance'](name, True)

    def stop(self):
        self.stop_calls += 1
        self._stop_requested = True
        self.release.set()


@pytest.fixture
def driver(monkeypatch):
    driver = FakeDriver()
    monkeypatch.setattr(engines.pyttsx3, 'init', lambda driver_name=None: driver)
    return driver


def speak(engine, text, on_start=lambda: None):
    done = threading.Event()
    errors = []

    def on_error(error):
        errors.append(error)
        done.set()

    engine.speak(Utterance(text, 'sa-IN', rate=0.5), on_start, done.set, on_error)
    return done, errors


def test_pyttsx3_engine_uses_one_loop_thread(driver):
    engine = engines.Pyttsx3Engine()

    for text in ('one', 'two', 'three'):
        done, errors = speak(engine, text)
        assert done.wait(2)
        assert errors == []

    assert driver.said == ['one', 'two', 'three']
    assert len(set(driver.loop_threads)) == 1
    assert driver.loop_threads[0] is not threading.current_thread()
    assert driver.max_running == 1
    assert driver.props['rate'] == 100


def test_pyttsx3_engine_cancel_drops_queued_utterances(driver):
    engine = engines.Pyttsx3Engine()
    driver.release.clear()

    started = threading.Event()
    first, _ = speak(engine, 'one', on_start=started.set)
    assert started.wait(2)
    second, _ = speak(engine, 'two')

    engine.cancel()

    assert second.wait(2)
    assert first.wait(2)
    assert driver.stop_calls == 1
    assert driver.said == ['one']


def test_pyttsx3_engine_reports_run_loop_failure(driver):
    driver.fail = RuntimeError('run loop already started')
    engine = engines.Pyttsx3Engine()

    done, errors = speak(engine, 'one')

    assert done.wait(2)
    assert isinstance(errors[0], SpeechError)
    assert 'run loop already started' in str(errors[0])


def test_pyttsx3_voices(driver):
    driver.props['voices'] = [
        type('V', (), {'id': 'sa', 'name': 'Vani', 'languages': [b'\x05sa']})(),
    ]
    voices = engines.Pyttsx3Engine().get_voices()
    assert [(v.id, v.name, v.lang) for v in voices] == [('sa', 'Vani', 'sa')]


@pytest.mark.parametrize('name', (None, 'null'))
def test_null_factories(name):
    assert engines.create_engine(name).name == 'null'
    assert engines.create_media_player(name).name == 'null'


def test_unknown_engine():
    with pytest.raises(ValueError):
        engines.create_engine('festival')
