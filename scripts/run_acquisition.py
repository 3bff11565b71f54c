#!/usr/bin/env python3
"""``obsacq`` observation acquisition runner.

Usage:
    python scripts/run_acquisition.py scripts/user_config.py
    python scripts/run_acquisition.py scripts/user_config.py --loop flag --skip
    python scripts/run_acquisition.py scripts/user_config.py --from 12 --to 20
    python scripts/run_acquisition.py scripts/user_config.py --list 1,3:5,9
    python scripts/run_acquisition.py scripts/user_config.py --files-from tonight.lis

Note: User config in scripts/user_config.py, expert defaults in
obsacq.schemas.param.ParamConfig
"""

import sys
import argparse
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from obsacq.cli import run_acquisition
from obsacq.pipeline.orchestrator import RunStatus


def main():
    parser = argparse.ArgumentParser(description="Acquire observations and hand them to a pipeline")
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("--loop", choices=["list", "inf", "wait", "flag", "task", "file"],
                        help="Override discovery loop")
    parser.add_argument("--ut", dest="utdate", help="UT date (YYYYMMDD)")
    parser.add_argument("--from", dest="from_obs", type=int, help="First observation number")
    parser.add_argument("--to", dest="to_obs", type=int, help="Last observation number")
    parser.add_argument("--list", dest="obs_list", help="Observations, e.g. 1,3:5,9")
    files = parser.add_mutually_exclusive_group()
    files.add_argument("--files", nargs="+", help="Explicit raw files to process")
    files.add_argument("--files-from", help="Text file listing raw files, one per line")
    parser.add_argument("--skip", action="store_true", default=None,
                        help="Skip missing observations")
    parser.add_argument("--data-in", help="Input data root")
    parser.add_argument("--data-out", help="Output working directory")
    parser.add_argument("--max-frames", type=int, help="Stop after this many frames")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    cli_args = {
        "loop": args.loop,
        "utdate": args.utdate,
        "from_obs": args.from_obs,
        "to_obs": args.to_obs,
        "obs_list": args.obs_list,
        "files": args.files,
        "files_from": args.files_from,
        "skip": args.skip,
        "data_in": args.data_in,
        "data_out": args.data_out,
    }

    print(f"\n{'='*60}")
    print("obsacq observation acquisition")
    print('='*60)
    print(f"Config: {args.config}")
    print('='*60)

    summary = run_acquisition(
        args.config,
        cli_args=cli_args,
        max_frames=args.max_frames,
        verbose=args.verbose,
    )

    print(f"Status:    {summary.status.value}")
    print(f"Loop:      {summary.loop}")
    print(f"Delivered: {summary.delivered} observation(s), {summary.frames} frame(s)")
    print(f"Failed:    {summary.failed}")
    print(f"Cursor:    {summary.cursor.to_slots()}")

    if summary.status is RunStatus.STALLED:
        return 2
    return 0 if summary.ok else 1


if __name__ == "__main__":
    sys.exit(main())
