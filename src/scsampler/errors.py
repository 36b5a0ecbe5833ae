"""
Sampler error taxonomy

Every failure raised by the package derives from SamplerError so callers
can catch the whole family with one clause.
"""


class SamplerError(Exception):
    """Base class for all sampler errors"""


class InvalidSlot(SamplerError, ValueError):
    """Slot index outside [0, 127]"""

    def __init__(self, slot):
        super().__init__(f"slot ({slot}) must be an integer >= 0 and <= 127")
        self.slot = slot


class UnsupportedChannelLayout(SamplerError, ValueError):
    """Sample has neither 1 nor 2 channels"""

    def __init__(self, num_channels):
        super().__init__(
            f"only samples with 1 or 2 channels are supported (got {num_channels})"
        )
        self.num_channels = num_channels


class SampleProbeFailed(SamplerError):
    """Audio file header could not be read"""


class EngineUnavailable(SamplerError):
    """Local OSC endpoint could not be opened"""


class EngineHandshakeTimeout(SamplerError, TimeoutError):
    """Engine did not acknowledge a synthdef in time"""


class SynthDefRejected(SamplerError):
    """Engine answered /d_recv with /fail"""


class DispatchFailed(SamplerError):
    """Transport failure while sending an instantiation batch"""
