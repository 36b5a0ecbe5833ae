"""
Tests for Dispatcher

Request building and batching against a mocked group.
"""

import threading
import pytest
import sys
import os
from unittest.mock import Mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from scsampler.dispatch import Dispatcher
from scsampler.engine import AddAction, Group, SynthIdAllocator
from scsampler.errors import DispatchFailed
from scsampler.slot_table import SlotTable
from scsampler.synthdef import SynthDefRegistry, MONO_DEF_NAME, STEREO_DEF_NAME


class FakeConnection:
    """Connection stand-in: real ID allocator, recorded sends"""

    def __init__(self):
        self.ids = SynthIdAllocator()
        self.sent = []
        self.fail = False

    def next_synth_id(self):
        return self.ids.next()

    def send(self, packet):
        if self.fail:
            raise OSError("network unreachable")
        self.sent.append(packet)


class TestDispatcher:

    def setup_method(self):
        self.slots = SlotTable()
        self.registry = SynthDefRegistry()
        self.connection = FakeConnection()
        self.group = Group(self.connection, 1)
        self.dispatcher = Dispatcher(self.slots, self.registry, self.group)

    def test_mono_and_stereo_in_one_bundle(self):
        self.slots.admit(0, 1)
        self.slots.admit(0, 2)

        requests = self.dispatcher.play(0, {})

        assert [r.def_name for r in requests] == [MONO_DEF_NAME, STEREO_DEF_NAME]
        assert len({r.synth_id for r in requests}) == 2
        assert len(self.connection.sent) == 1

        bundle = self.connection.sent[0]
        messages = [bundle.content(i) for i in range(bundle.num_contents)]
        assert [m.address for m in messages] == ["/s_new", "/s_new"]
        assert messages[0].params == [MONO_DEF_NAME, requests[0].synth_id, int(AddAction.TAIL), 1]
        assert messages[1].params == [STEREO_DEF_NAME, requests[1].synth_id, int(AddAction.TAIL), 1]

    def test_n_samples_n_requests(self):
        for _ in range(5):
            self.slots.admit(60, 1)
        requests = self.dispatcher.play(60)
        assert len(requests) == 5
        assert all(r.action == AddAction.TAIL for r in requests)
        assert self.connection.sent[0].num_contents == 5

    def test_ids_never_reused(self):
        self.slots.admit(1, 1)
        self.slots.admit(2, 2)
        self.slots.admit(2, 2)

        ids = []
        for slot in (1, 2, 1, 2):
            ids.extend(r.synth_id for r in self.dispatcher.play(slot))
        assert len(ids) == 6
        assert len(set(ids)) == 6
        assert ids == sorted(ids)

    def test_controls_not_forwarded(self):
        self.slots.admit(0, 1)
        requests = self.dispatcher.play(0, {"amp": 0.5, "bufnum": 3.0})
        assert requests[0].controls == ()
        message = self.connection.sent[0].content(0)
        assert len(message.params) == 4

    def test_empty_slot_sends_nothing(self):
        assert self.dispatcher.play(10) == []
        assert self.connection.sent == []

    def test_order_follows_admission(self):
        for channels in (2, 1, 2, 1):
            self.slots.admit(7, channels)
        names = [r.def_name for r in self.dispatcher.play(7)]
        assert names == [STEREO_DEF_NAME, MONO_DEF_NAME, STEREO_DEF_NAME, MONO_DEF_NAME]

    def test_send_failure(self):
        self.slots.admit(0, 1)
        self.connection.fail = True
        with pytest.raises(DispatchFailed) as exc_info:
            self.dispatcher.play(0)
        assert isinstance(exc_info.value.__cause__, OSError)

        # Connection stays usable
        self.connection.fail = False
        assert len(self.dispatcher.play(0)) == 1
        assert len(self.connection.sent) == 1

    def test_ids_consumed_even_on_failure(self):
        self.slots.admit(0, 1)
        self.slots.admit(0, 1)
        self.connection.fail = True
        with pytest.raises(DispatchFailed):
            self.dispatcher.play(0)
        self.connection.fail = False
        requests = self.dispatcher.play(0)
        assert [r.synth_id for r in requests] == [1002, 1003]

    def test_concurrent_play_unique_ids(self):
        for slot in range(8):
            self.slots.admit(slot, 1 + slot % 2)
            self.slots.admit(slot, 1)

        issued = []
        lock = threading.Lock()

        def trigger(slot):
            for _ in range(100):
                ids = [r.synth_id for r in self.dispatcher.play(slot)]
                with lock:
                    issued.extend(ids)

        threads = [threading.Thread(target=trigger, args=(s,)) for s in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(issued) == 8 * 100 * 2
        assert len(set(issued)) == len(issued)

    def test_with_mock_group(self):
        """Dispatcher hands the whole batch to the group in one call"""
        self.slots.admit(0, 1)
        self.slots.admit(0, 2)
        group = Mock()
        group.connection = self.connection
        dispatcher = Dispatcher(self.slots, self.registry, group)

        requests = dispatcher.play(0)
        group.synths.assert_called_once_with(requests)
