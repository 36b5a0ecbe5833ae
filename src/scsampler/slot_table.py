"""
SlotTable - fixed-capacity sample registry

128 slots, one per MIDI note. Each slot holds an ordered list of samples
that are triggered together; insertion order is trigger order.

Admission (load time) and reads (performance time) can interleave, so
both go through the table lock.
"""

import operator
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .errors import InvalidSlot, UnsupportedChannelLayout

NUM_SLOTS = 128
SUPPORTED_CHANNELS = (1, 2)


@dataclass(frozen=True)
class Sample:
    """One playable unit registered to a slot"""
    num_channels: int
    path: Optional[str] = None


def validate_slot(slot: int) -> int:
    """Return slot as an int, or raise InvalidSlot unless it is an integer in [0, 127]"""
    # bool is an int subclass but never a slot
    if isinstance(slot, bool):
        raise InvalidSlot(slot)
    try:
        index = operator.index(slot)
    except TypeError as e:
        raise InvalidSlot(slot) from e
    if index < 0 or index >= NUM_SLOTS:
        raise InvalidSlot(slot)
    return index


class SlotTable:
    """
    Append-only registry of samples, addressed by slot index.

    There is no removal or reordering operation.
    """

    def __init__(self):
        self._slots: List[List[Sample]] = [[] for _ in range(NUM_SLOTS)]
        self._lock = threading.Lock()

    def admit(self, slot: int, num_channels: int, path: Optional[str] = None) -> Sample:
        """
        Append a sample to a slot.

        Args:
            slot: Slot index (0-127)
            num_channels: Channel count of the sample (1 or 2)
            path: Source file, if the sample came from one

        Returns:
            The stored Sample

        Raises:
            InvalidSlot: slot not an integer or out of range
            UnsupportedChannelLayout: channel count not 1 or 2
        """
        slot = validate_slot(slot)
        if num_channels not in SUPPORTED_CHANNELS:
            raise UnsupportedChannelLayout(num_channels)

        sample = Sample(num_channels=num_channels, path=path)
        with self._lock:
            self._slots[slot].append(sample)
        return sample

    def samples_at(self, slot: int) -> Tuple[Sample, ...]:
        """
        Snapshot of the samples at a slot, in admission order.

        The index is trusted: it is not checked against InvalidSlot.
        Anything outside the table raises IndexError.
        """
        if slot < 0:
            # Python would otherwise wrap to the top slots
            raise IndexError(f"slot index out of range: {slot}")
        with self._lock:
            return tuple(self._slots[slot])

    def occupied(self) -> Dict[int, Tuple[Sample, ...]]:
        """Map of slot index to samples for every non-empty slot"""
        with self._lock:
            return {i: tuple(s) for i, s in enumerate(self._slots) if s}

    def __len__(self):
        with self._lock:
            return sum(len(s) for s in self._slots)
