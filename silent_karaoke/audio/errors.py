class AudioError(RuntimeError):
    pass


class AudioDecodeError(AudioError):
    pass


class MicrophoneUnavailable(AudioError):
    pass


class PlaybackStartError(AudioError):
    pass


class WavFormatError(ValueError):
    pass
