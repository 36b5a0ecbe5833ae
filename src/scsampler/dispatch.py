"""
Dispatcher - turns a slot trigger into one batch of /s_new requests
"""

from typing import Dict, List, Optional

from .engine import AddAction, Group, SynthInstantiationRequest
from .errors import DispatchFailed
from .slot_table import SlotTable
from .synthdef import SynthDefRegistry


class Dispatcher:
    """
    Plays every sample registered at a slot, together.

    All requests for a slot go out in a single bundle against the group,
    in the slot's insertion order.
    """

    def __init__(self, slots: SlotTable, registry: SynthDefRegistry, group: Group):
        self.slots = slots
        self.registry = registry
        self.group = group

    def build_requests(self, slot: int,
                       ctls: Optional[Dict[str, float]] = None) -> List[SynthInstantiationRequest]:
        """
        One request per sample at slot, each with a freshly allocated ID.

        The slot index is not range-checked here. ctls is not forwarded
        yet: every request carries an empty control mapping.
        """
        requests = []
        for sample in self.slots.samples_at(slot):
            synthdef = self.registry.for_channels(sample.num_channels)
            requests.append(SynthInstantiationRequest(
                def_name=synthdef.name,
                synth_id=self.group.connection.next_synth_id(),
                action=AddAction.TAIL,
                controls=(),
            ))
        return requests

    def play(self, slot: int,
             ctls: Optional[Dict[str, float]] = None) -> List[SynthInstantiationRequest]:
        """
        Trigger a slot.

        Returns:
            The requests sent (empty for an empty slot)

        Raises:
            DispatchFailed: the bundle could not be sent
        """
        requests = self.build_requests(slot, ctls)
        try:
            self.group.synths(requests)
        except OSError as e:
            raise DispatchFailed(f"failed to play slot {slot}: {e}") from e
        return requests
