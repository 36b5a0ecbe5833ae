"""
Audio file probing

Only the header is read: admission needs the channel count, never the
sample data.
"""

import soundfile as sf

from .errors import SampleProbeFailed


def probe_channels(path) -> int:
    """
    Return the number of channels in an audio file.

    Raises:
        SampleProbeFailed: file missing, unreadable or not a supported format
    """
    try:
        info = sf.info(str(path))
    except (RuntimeError, OSError) as e:
        raise SampleProbeFailed(f"cannot read {path}: {e}") from e
    return info.channels
