#!/usr/bin/env python3
"""
scsampler command-line tool

Write the playback synthdefs, inspect sample files, or load samples into a
slot on a running scsynth and trigger it.
"""

import argparse
import sys
import time

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import get_config
from .errors import SamplerError
from .probe import probe_channels
from .sampler import Sampler
from .synthdef import SynthDefRegistry

console = Console()


def cmd_defs(args) -> int:
    """Write both synthdefs to args.out"""
    for synthdef in SynthDefRegistry().definitions():
        path = synthdef.write(args.out)
        console.print(f"scsampler: Wrote {escape(path)}")
    return 0


def cmd_probe(args) -> int:
    """Print the channel count of each file"""
    table = Table(title="Samples")
    table.add_column("File")
    table.add_column("Channels", justify="right")
    table.add_column("Playable")

    status = 0
    for path in args.files:
        try:
            channels = probe_channels(path)
        except SamplerError as e:
            table.add_row(escape(path), "-", f"[red]{escape(str(e))}[/red]")
            status = 1
            continue
        playable = "yes" if channels in (1, 2) else "[red]no[/red]"
        table.add_row(escape(path), str(channels), playable)

    console.print(table)
    return status


def slots_table(occupied) -> Table:
    """Table of every loaded sample, by slot"""
    table = Table(title="Loaded slots")
    table.add_column("Slot", justify="right")
    table.add_column("#", justify="right")
    table.add_column("Channels", justify="right")
    table.add_column("File")

    for slot, samples in sorted(occupied.items()):
        for position, sample in enumerate(samples):
            table.add_row(str(slot), str(position), str(sample.num_channels),
                          escape(sample.path or "-"))
    return table


def cmd_play(args) -> int:
    """Load files into a slot and trigger it"""
    address = (args.host, args.port)
    console.print(f"scsampler: Connecting to scsynth at {args.host}:{args.port}...")

    with Sampler(address, timeout=args.timeout) as sampler:
        for path in args.files:
            sample = sampler.add(path, args.slot)
            console.print(f"scsampler: Slot {args.slot} <- {escape(path)} "
                          f"({sample.num_channels} ch)")

        console.print(slots_table(sampler.slots.occupied()))

        table = Table(title=f"Slot {args.slot}")
        table.add_column("Trigger", justify="right")
        table.add_column("Synth ID", justify="right")
        table.add_column("SynthDef")

        for n in range(args.repeat):
            for request in sampler.play(args.slot):
                table.add_row(str(n + 1), str(request.synth_id), request.def_name)
            if n + 1 < args.repeat:
                time.sleep(args.interval)

        console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    config = get_config()

    parser = argparse.ArgumentParser(
        prog="scsampler",
        description="Slot-based sample playback on SuperCollider",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  scsampler defs --out synthdefs/        # Write .scsyndef files
  scsampler probe kick.wav pad.wav       # Show channel counts
  scsampler play --slot 36 kick.wav      # Load and trigger slot 36
  scsampler play --slot 0 a.wav b.wav --repeat 4 --interval 0.5
        """
    )

    parser.add_argument("--host", default=config['engine_host'],
                        help=f"scsynth host (default: {config['engine_host']})")
    parser.add_argument("--port", type=int, default=config['engine_port'],
                        help=f"scsynth UDP port (default: {config['engine_port']})")
    parser.add_argument("--timeout", type=float, default=config['timeout'],
                        help=f"synthdef handshake timeout in seconds (default: {config['timeout']})")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    defs_parser = subparsers.add_parser("defs", help="Write the playback synthdefs")
    defs_parser.add_argument("--out", default=".", help="Output directory (default: .)")

    probe_parser = subparsers.add_parser("probe", help="Show channel counts of audio files")
    probe_parser.add_argument("files", nargs="+", help="Audio files")

    play_parser = subparsers.add_parser("play", help="Load files into a slot and trigger it")
    play_parser.add_argument("--slot", type=int, required=True, help="Slot index (0-127)")
    play_parser.add_argument("files", nargs="+", help="Audio files to load into the slot")
    play_parser.add_argument("--repeat", type=int, default=1, help="Number of triggers (default: 1)")
    play_parser.add_argument("--interval", type=float, default=1.0,
                             help="Seconds between triggers (default: 1.0)")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "defs": cmd_defs,
        "probe": cmd_probe,
        "play": cmd_play,
    }

    try:
        return commands[args.command](args)
    except SamplerError as e:
        console.print(f"[red]scsampler: Error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
