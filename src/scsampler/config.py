"""
Configuration for sampler tools

Values come from SCSAMPLER_* environment variables. The library API takes
the engine address as an argument; these are defaults for the CLI and the
verbose diagnostics switch.
"""

import os
from typing import Dict, Any

# scsynth listens on UDP 57110 unless told otherwise
DEFAULT_ENGINE_HOST = '127.0.0.1'
DEFAULT_ENGINE_PORT = 57110
DEFAULT_TIMEOUT = 5.0


def verbose() -> bool:
    """True when SCSAMPLER_VERBOSE=1"""
    return os.environ.get('SCSAMPLER_VERBOSE', '0') == '1'


def get_config() -> Dict[str, Any]:
    """Get parsed configuration values"""
    config = {
        # Engine
        'engine_host': os.environ.get('SCSAMPLER_ENGINE_HOST', DEFAULT_ENGINE_HOST),
        'engine_port': int(os.environ.get('SCSAMPLER_ENGINE_PORT', str(DEFAULT_ENGINE_PORT))),
        'timeout': float(os.environ.get('SCSAMPLER_TIMEOUT', str(DEFAULT_TIMEOUT))),

        # Debug
        'verbose': verbose(),
    }
    return config
