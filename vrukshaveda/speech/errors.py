class SpeechError(Exception):
    """Speech synthesis failed or is not available."""


class MediaError(Exception):
    """A stored audio file could not be loaded or played."""
