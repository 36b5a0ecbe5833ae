"""
EngineConnection - OSC session with scsynth

Responsibilities:
1. Open a local UDP endpoint that both sends to and hears from the engine
2. Publish synthdefs and wait for /done (or /fail)
3. Create the default group all synths are placed in
4. Allocate synth IDs, unique for the life of the connection
5. Send messages and bundles
"""

import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Sequence, Tuple, Union

from pythonosc import dispatcher
from pythonosc.osc_bundle import OscBundle
from pythonosc.osc_bundle_builder import OscBundleBuilder, IMMEDIATELY
from pythonosc.osc_message import OscMessage
from pythonosc.osc_message_builder import OscMessageBuilder
from pythonosc.osc_server import ThreadingOSCUDPServer

from . import config
from .errors import EngineHandshakeTimeout, EngineUnavailable, SynthDefRejected

HANDSHAKE_TIMEOUT = 5.0

ROOT_NODE_ID = 0
DEFAULT_GROUP_ID = 1
FIRST_SYNTH_ID = 1000

LOCAL_ADDRESS = ("0.0.0.0", 0)


class AddAction(IntEnum):
    """Node placement relative to the target node"""
    HEAD = 0
    TAIL = 1
    BEFORE = 2
    AFTER = 3
    REPLACE = 4


def parse_address(addr: Union[str, Tuple[str, int]]) -> Tuple[str, int]:
    """
    Normalize an engine address.

    Accepts "host:port" or a (host, port) tuple.
    """
    if isinstance(addr, str):
        host, sep, port = addr.rpartition(':')
        if not sep or not host:
            raise ValueError(f"engine address must be host:port, got {addr!r}")
        return host, int(port)
    host, port = addr
    return str(host), int(port)


def build_message(address: str, args: Sequence = ()) -> OscMessage:
    builder = OscMessageBuilder(address=address)
    for arg in args:
        builder.add_arg(arg)
    return builder.build()


@dataclass(frozen=True)
class SynthInstantiationRequest:
    """One /s_new: start a synth from def_name with a fresh ID"""
    def_name: str
    synth_id: int
    action: AddAction = AddAction.TAIL
    controls: Tuple[Tuple[str, float], ...] = ()

    def to_message(self, target_id: int) -> OscMessage:
        args = [self.def_name, self.synth_id, int(self.action), target_id]
        for name, value in self.controls:
            args.extend([name, float(value)])
        return build_message("/s_new", args)


class SynthIdAllocator:
    """Monotonic, thread-safe synth ID counter"""

    def __init__(self, start: int = FIRST_SYNTH_ID):
        self._next = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            synth_id = self._next
            self._next += 1
        return synth_id


class Group:
    """Engine-side group used as the placement target for synths"""

    def __init__(self, connection: 'EngineConnection', node_id: int):
        self.connection = connection
        self.node_id = node_id

    def synths(self, requests: Sequence[SynthInstantiationRequest]) -> None:
        """
        Send every request in one bundle, targeting this group.

        Raises OSError if the datagram cannot be sent.
        """
        if not requests:
            return
        builder = OscBundleBuilder(IMMEDIATELY)
        for request in requests:
            builder.add_content(request.to_message(self.node_id))
        self.connection.send(builder.build())

    def __repr__(self):
        return f"Group({self.node_id})"


class EngineConnection:
    """
    Session with one scsynth instance.

    Replies come back to the address we send from, so a single
    ThreadingOSCUDPServer socket is used for both directions. The server
    runs in a daemon thread and only touches the publish ack state.
    """

    def __init__(self, engine_addr, timeout: float = HANDSHAKE_TIMEOUT,
                 local_addr: Tuple[str, int] = LOCAL_ADDRESS):
        self.engine_addr = parse_address(engine_addr)
        self.timeout = timeout
        self._ids = SynthIdAllocator()
        self._closed = False

        # Publish ack state, guarded by _ack_lock
        self._ack_lock = threading.Lock()
        self._pending_def: Optional[str] = None
        self._ack_event: Optional[threading.Event] = None
        self._ack_error: Optional[str] = None

        disp = dispatcher.Dispatcher()
        disp.map("/done", self._handle_done)
        disp.map("/fail", self._handle_fail)
        disp.set_default_handler(self._handle_other)

        try:
            self._server = ThreadingOSCUDPServer(local_addr, disp)
        except OSError as e:
            raise EngineUnavailable(f"cannot open OSC endpoint {local_addr}: {e}") from e

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            kwargs={'poll_interval': 0.05},
            name="scsampler-osc",
            daemon=True,
        )
        self._thread.start()

        if config.verbose():
            print(f"[Engine] Listening on {self.local_address}, engine at "
                  f"{self.engine_addr[0]}:{self.engine_addr[1]}")

    @property
    def local_address(self) -> Tuple[str, int]:
        return self._server.server_address

    def send(self, packet: Union[OscMessage, OscBundle]) -> None:
        """Send one datagram to the engine. Raises OSError on failure."""
        self._server.socket.sendto(packet.dgram, self.engine_addr)

    def next_synth_id(self) -> int:
        return self._ids.next()

    def add_default_group(self) -> Group:
        """Create group 1 at the tail of the root node"""
        try:
            self.send(build_message(
                "/g_new", [DEFAULT_GROUP_ID, int(AddAction.TAIL), ROOT_NODE_ID]))
        except OSError as e:
            raise EngineUnavailable(f"cannot create default group: {e}") from e
        return Group(self, DEFAULT_GROUP_ID)

    def send_def(self, synthdef) -> None:
        """
        Send a synthdef with /d_recv and block until the engine confirms it.

        Raises:
            EngineHandshakeTimeout: no /done within self.timeout
            SynthDefRejected: engine replied /fail
            EngineUnavailable: datagram could not be sent
        """
        event = threading.Event()
        with self._ack_lock:
            self._pending_def = synthdef.name
            self._ack_event = event
            self._ack_error = None

        try:
            try:
                self.send(build_message("/d_recv", [synthdef.encode()]))
            except OSError as e:
                raise EngineUnavailable(f"cannot send synthdef {synthdef.name}: {e}") from e

            if not event.wait(self.timeout):
                raise EngineHandshakeTimeout(
                    f"engine did not acknowledge synthdef {synthdef.name} "
                    f"within {self.timeout}s"
                )
        finally:
            with self._ack_lock:
                error = self._ack_error
                self._pending_def = None
                self._ack_event = None
                self._ack_error = None

        if error is not None:
            raise SynthDefRejected(f"engine rejected synthdef {synthdef.name}: {error}")

        if config.verbose():
            print(f"[Engine] Synthdef ready: {synthdef.name}")

    def _handle_done(self, address, *args):
        if not args or args[0] != "/d_recv":
            return
        with self._ack_lock:
            if self._ack_event is None:
                return
            # scsynth sends no name; engines that do must match the pending def
            if len(args) > 1 and args[1] != self._pending_def:
                return
            self._ack_event.set()

    def _handle_fail(self, address, *args):
        if not args or args[0] != "/d_recv":
            return
        with self._ack_lock:
            if self._ack_event is None:
                return
            self._ack_error = " ".join(str(a) for a in args[1:]) or "unknown error"
            self._ack_event.set()

    def _handle_other(self, address, *args):
        if config.verbose():
            print(f"[Engine] Unhandled reply: {address} {list(args)}")

    def close(self):
        """Stop the listener and release the socket"""
        if self._closed:
            return
        self._closed = True
        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=1.0)
        if config.verbose():
            print("[Engine] Connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
