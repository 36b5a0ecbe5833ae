"""
scsampler - slot-based sample triggering for SuperCollider
"""

__version__ = "0.1.0"

from .errors import (
    SamplerError,
    InvalidSlot,
    UnsupportedChannelLayout,
    SampleProbeFailed,
    EngineUnavailable,
    EngineHandshakeTimeout,
    SynthDefRejected,
    DispatchFailed,
)
from .slot_table import NUM_SLOTS, Sample, SlotTable
from .synthdef import SynthDef, SynthDefRegistry
from .engine import AddAction, EngineConnection, Group, SynthInstantiationRequest
from .dispatch import Dispatcher
from .sampler import Sampler

__all__ = [
    'Sampler', 'SlotTable', 'Sample', 'NUM_SLOTS',
    'SynthDef', 'SynthDefRegistry',
    'EngineConnection', 'Group', 'AddAction', 'SynthInstantiationRequest',
    'Dispatcher',
    'SamplerError', 'InvalidSlot', 'UnsupportedChannelLayout', 'SampleProbeFailed',
    'EngineUnavailable', 'EngineHandshakeTimeout', 'SynthDefRejected', 'DispatchFailed',
]
