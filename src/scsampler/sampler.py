"""
Sampler - sample playback on top of SuperCollider

Loads samples into 128 slots. A slot usually corresponds to a MIDI note
that triggers it, and can hold several samples that play together.
"""

from typing import Callable, Dict, Optional, Tuple

from . import config
from .dispatch import Dispatcher
from .engine import HANDSHAKE_TIMEOUT, EngineConnection
from .probe import probe_channels
from .slot_table import Sample, SlotTable
from .synthdef import SynthDefRegistry


class Sampler:
    """
    Aggregate root: slot table, synthdefs and the engine session.

    Construction performs the whole handshake (endpoint, default group,
    synthdef publish). If any step fails the connection is closed and the
    error propagates; there is no half-initialized Sampler.

    Args:
        engine_addr: scsynth address, "host:port" or (host, port)
        timeout: Seconds to wait for each synthdef acknowledgment
        probe: Callable returning the channel count of an audio file
    """

    def __init__(self, engine_addr, timeout: float = HANDSHAKE_TIMEOUT,
                 probe: Callable[[str], int] = probe_channels):
        self._probe = probe
        self.registry = SynthDefRegistry()
        self.connection = EngineConnection(engine_addr, timeout)
        try:
            self.group = self.connection.add_default_group()
            self.registry.publish(self.connection)
        except Exception:
            self.connection.close()
            raise

        self.slots = SlotTable()
        self.dispatcher = Dispatcher(self.slots, self.registry, self.group)

        if config.verbose():
            print(f"[Sampler] Ready: {len(self.registry.definitions())} synthdefs, "
                  f"group {self.group.node_id}")

    def add(self, audio_file, slot: int) -> Sample:
        """
        Add the sample at audio_file to slot.

        Raises:
            SampleProbeFailed: file could not be read
            InvalidSlot, UnsupportedChannelLayout: as for admit()
        """
        num_channels = self._probe(str(audio_file))
        return self.slots.admit(slot, num_channels, path=str(audio_file))

    def admit(self, slot: int, num_channels: int) -> Sample:
        """Register a sample of num_channels at slot"""
        return self.slots.admit(slot, num_channels)

    def samples_at(self, slot: int) -> Tuple[Sample, ...]:
        return self.slots.samples_at(slot)

    def play(self, slot: int, ctls: Optional[Dict[str, float]] = None):
        """
        Play the samples at the given slot.

        Note that the slot is not validated to be between 0 and 127.
        """
        requests = self.dispatcher.play(slot, ctls)
        if config.verbose():
            ids = [r.synth_id for r in requests]
            print(f"[Sampler] Slot {slot}: {len(requests)} synths {ids}")
        return requests

    def close(self):
        self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
