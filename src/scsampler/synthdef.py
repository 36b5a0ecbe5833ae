"""
SynthDef - playback definitions for scsynth

Provides:
- A minimal UGen graph model (UGen, OutputProxy)
- SCgf version 2 binary encoding, ready for /d_recv or a .scsyndef file
- The two sample playback definitions (mono, stereo)
- SynthDefRegistry, which owns them and publishes them to the engine
"""

import os
import struct
from enum import IntEnum
from typing import Dict, List, NamedTuple, Sequence, Tuple, Union

SCGF_MAGIC = b'SCgf'
SCGF_VERSION = 2

MONO_DEF_NAME = "sampler_simple_mono"
STEREO_DEF_NAME = "sampler_simple_stereo"

# doneAction 2 frees the synth that contains the ugen
FREE_ENCLOSING = 2


class Rate(IntEnum):
    """UGen calculation rates"""
    SCALAR = 0
    CONTROL = 1
    AUDIO = 2


class OutputProxy(NamedTuple):
    """Reference to one output of a UGen, usable as another UGen's input"""
    ugen: 'UGen'
    index: int


UGenInput = Union[float, int, OutputProxy]


class UGen:
    """
    A node in a synth graph.

    Inputs are constants or outputs of UGens that appear earlier in the
    graph. Every output runs at the UGen's own rate.
    """

    def __init__(self, name: str, rate: Rate, inputs: Sequence[UGenInput] = (),
                 num_outputs: int = 1, special_index: int = 0):
        self.name = name
        self.rate = Rate(rate)
        self.inputs = list(inputs)
        self.num_outputs = num_outputs
        self.special_index = special_index

    def output(self, index: int = 0) -> OutputProxy:
        if not 0 <= index < self.num_outputs:
            raise IndexError(f"{self.name} has no output {index}")
        return OutputProxy(self, index)

    def __repr__(self):
        return f"UGen({self.name}.{self.rate.name.lower()}, outputs={self.num_outputs})"


def _pstring(value: str) -> bytes:
    raw = value.encode('ascii')
    if len(raw) > 255:
        raise ValueError(f"name too long for SCgf: {value}")
    return struct.pack('>B', len(raw)) + raw


class SynthDef:
    """
    Immutable synth definition: a name, its controls and a UGen graph.

    Args:
        name: Definition name the engine will know it by
        ugens: Graph nodes in topological order
        params: (name, default) pairs, in Control output order
        num_channels: Channel arity of the buffer this def plays
    """

    def __init__(self, name: str, ugens: Sequence[UGen],
                 params: Sequence[Tuple[str, float]] = (), num_channels: int = 1):
        self.name = name
        self.num_channels = num_channels
        self._ugens = tuple(ugens)
        self._params = tuple((n, float(v)) for n, v in params)
        self._check_order()

    @property
    def ugens(self) -> Tuple[UGen, ...]:
        return self._ugens

    @property
    def params(self) -> Tuple[Tuple[str, float], ...]:
        return self._params

    def _check_order(self):
        seen = set()
        for ugen in self._ugens:
            for inp in ugen.inputs:
                if isinstance(inp, OutputProxy) and id(inp.ugen) not in seen:
                    raise ValueError(
                        f"{self.name}: {ugen.name} reads {inp.ugen.name} before it is defined"
                    )
            seen.add(id(ugen))

    def constants(self) -> List[float]:
        """Constant inputs, deduplicated in first-use order"""
        constants: List[float] = []
        for ugen in self._ugens:
            for inp in ugen.inputs:
                if not isinstance(inp, OutputProxy) and float(inp) not in constants:
                    constants.append(float(inp))
        return constants

    def encode_body(self) -> bytes:
        """Encode this definition without the SCgf file header"""
        constants = self.constants()
        const_index: Dict[float, int] = {c: i for i, c in enumerate(constants)}
        ugen_index = {id(u): i for i, u in enumerate(self._ugens)}

        out = bytearray(_pstring(self.name))

        out += struct.pack('>i', len(constants))
        out += struct.pack(f'>{len(constants)}f', *constants)

        out += struct.pack('>i', len(self._params))
        out += struct.pack(f'>{len(self._params)}f', *(v for _, v in self._params))
        out += struct.pack('>i', len(self._params))
        for index, (param_name, _) in enumerate(self._params):
            out += _pstring(param_name) + struct.pack('>i', index)

        out += struct.pack('>i', len(self._ugens))
        for ugen in self._ugens:
            out += _pstring(ugen.name)
            out += struct.pack('>biih', ugen.rate, len(ugen.inputs),
                               ugen.num_outputs, ugen.special_index)
            for inp in ugen.inputs:
                if isinstance(inp, OutputProxy):
                    out += struct.pack('>ii', ugen_index[id(inp.ugen)], inp.index)
                else:
                    out += struct.pack('>ii', -1, const_index[float(inp)])
            out += struct.pack(f'>{ugen.num_outputs}b', *([ugen.rate] * ugen.num_outputs))

        # No variants
        out += struct.pack('>h', 0)
        return bytes(out)

    def encode(self) -> bytes:
        """Encode as a complete SCgf file holding this one definition"""
        return SCGF_MAGIC + struct.pack('>ih', SCGF_VERSION, 1) + self.encode_body()

    def write(self, directory) -> str:
        """Write <name>.scsyndef into directory and return its path"""
        path = os.path.join(str(directory), f"{self.name}.scsyndef")
        with open(path, 'wb') as f:
            f.write(self.encode())
        return path

    def __repr__(self):
        return f"SynthDef({self.name!r}, channels={self.num_channels})"


def simple_def(name: str, num_channels: int) -> SynthDef:
    """
    Plain buffer playback.

    Reads control `bufnum` (default 0), plays it once at audio rate, frees
    itself when done and writes to output bus 0. A mono buffer is sent to
    both output channels.
    """
    control = UGen("Control", Rate.CONTROL, num_outputs=1)
    sig = UGen("PlayBuf", Rate.AUDIO,
               [control.output(0), 1.0, 1.0, 0.0, 0.0, FREE_ENCLOSING],
               num_outputs=num_channels)

    if num_channels == 1:
        channels = [sig.output(0), sig.output(0)]
    else:
        channels = [sig.output(i) for i in range(num_channels)]

    out = UGen("Out", Rate.AUDIO, [0] + channels, num_outputs=0)
    return SynthDef(name, [control, sig, out], params=[("bufnum", 0)],
                    num_channels=num_channels)


class SynthDefRegistry:
    """
    Owns the playback definitions for one Sampler.

    Built once per Sampler; the Dispatcher reads the definitions, nothing
    mutates them.
    """

    def __init__(self):
        self.mono = simple_def(MONO_DEF_NAME, 1)
        self.stereo = simple_def(STEREO_DEF_NAME, 2)

    def definitions(self) -> Tuple[SynthDef, SynthDef]:
        return (self.mono, self.stereo)

    def for_channels(self, num_channels: int) -> SynthDef:
        """Definition that plays a sample with this many channels"""
        # TODO: granular and time-stretch defs once playback styles are selectable per sample
        if num_channels == 1:
            return self.mono
        return self.stereo

    def publish(self, connection):
        """
        Send each definition and wait for the engine to acknowledge it.

        Raises:
            EngineHandshakeTimeout: no acknowledgment within the connection timeout
            SynthDefRejected: engine replied /fail
        """
        for synthdef in self.definitions():
            connection.send_def(synthdef)
