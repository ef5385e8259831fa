from vrukshaveda.speech import Voice, pick_voice, wait_for_voices

HINDI = Voice('hi', 'Lekha', 'hi-IN')
SANSKRIT_IN = Voice('sa-in', 'Vani', 'sa_IN')
SANSKRIT_BARE = Voice('sa', 'Plain', 'sa')
SANSKRIT_OTHER = Voice('sa-x', 'Other', 'sa-Deva')
NAMED = Voice('custom', 'Sanskrit (experimental)', '')


def test_exact_locale_wins():
    voices = [HINDI, SANSKRIT_OTHER, NAMED, SANSKRIT_IN]
    assert pick_voice(voices, 'sa-IN', 'sanskrit') is SANSKRIT_IN


def test_bare_language_counts_as_exact():
    voices = [SANSKRIT_OTHER, SANSKRIT_BARE]
    assert pick_voice(voices, 'sa-IN') is SANSKRIT_BARE


def test_prefix_before_name():
    assert pick_voice([HINDI, NAMED, SANSKRIT_OTHER], 'sa-IN', 'sanskrit') is SANSKRIT_OTHER


def test_name_hint():
    assert pick_voice([HINDI, NAMED], 'sa-IN', 'sanskrit') is NAMED


def test_no_match_is_none():
    assert pick_voice([HINDI], 'sa-IN', 'sanskrit') is None
    assert pick_voice([], 'sa-IN', 'sanskrit') is None


class FakeClock(object):
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_wait_for_voices_polls_until_available():
    answers = [[], [], [HINDI]]
    clock = FakeClock()
    voices = wait_for_voices(lambda: answers.pop(0), 0.1, 3.0, clock.sleep, clock)
    assert voices == [HINDI]
    assert clock.sleeps == [0.1, 0.1]


def test_wait_for_voices_gives_up_after_timeout():
    calls = []
    clock = FakeClock()

    def get_voices():
        calls.append(clock.now)
        return []

    assert wait_for_voices(get_voices, 0.1, 3.0, clock.sleep, clock) == []
    assert clock.now >= 3.0
    assert len(calls) <= 32


def test_wait_for_voices_returns_immediately_when_ready():
    clock = FakeClock()
    assert wait_for_voices(lambda: [HINDI], 0.1, 3.0, clock.sleep, clock) == [HINDI]
    assert clock.sleeps == []
