"""CLI runner: scale the images of one directory and print the JSON response."""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .config import EngineConfig, JobSettings
from .handler import handle_event


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Resize every image directly inside a directory"
    )

    # Payload
    parser.add_argument("--dir", help="Directory, relative to the mount root or absolute")
    parser.add_argument("--op", dest="scale_op", help="Scale operation: up or down")
    parser.add_argument(
        "--factor", dest="scale_factor", type=int, default=1, help="Scale factor (default: 1)"
    )
    parser.add_argument(
        "--filter",
        default="gauss",
        help="Resampling filter: gauss, near, tri, cmr, lcz (default: gauss)",
    )
    parser.add_argument("--target-size", type=int, help="Side length for fixed-target sizing")
    parser.add_argument(
        "--payload", help="JSON payload file; replaces --dir/--op/--factor/--filter"
    )

    # Settings
    parser.add_argument("--mount-root", help="Mount root for relative directories")
    parser.add_argument("--output-mode", choices=["in_place", "subdirectory"])
    parser.add_argument("--sizing-mode", choices=["ratio", "fixed_target"])
    parser.add_argument("--format-policy", choices=["preserve_source", "fixed"])
    parser.add_argument("--target-format", help="Output format for the fixed policy")
    parser.add_argument("--max-workers", type=int, help="Maximum concurrent files")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> JobSettings:
    """Environment settings with command line overrides applied."""
    settings = JobSettings.from_env()

    engine_values = settings.engine.to_dict()
    for key in ("output_mode", "sizing_mode", "format_policy", "target_format", "max_workers"):
        value = getattr(args, key)
        if value is not None:
            engine_values[key] = value

    return JobSettings(
        mount_root=args.mount_root or settings.mount_root,
        engine=EngineConfig.from_dict(engine_values),
        log_level=args.log_level or settings.log_level,
    )


def load_payload(args: argparse.Namespace) -> Dict:
    """Payload from the --payload file, or from the individual flags."""
    if args.payload:
        with open(args.payload, "r", encoding="utf-8") as f:
            return json.load(f)

    payload: Dict = {
        "dir": args.dir,
        "scale_op": args.scale_op,
        "scale_factor": args.scale_factor,
        "filter": args.filter,
    }
    if args.target_size is not None:
        payload["target_size"] = args.target_size
    return payload


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    try:
        settings = build_settings(args)
    except ValueError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 2

    # The invoking log stream stamps its own time
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(levelname)s %(message)s",
    )

    try:
        payload = load_payload(args)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Could not load payload: {exc}", file=sys.stderr)
        return 2

    response = handle_event(payload, settings=settings)
    print(json.dumps(response, ensure_ascii=False, indent=2))
    return 0 if response["status"] == "ok" else 1


if __name__ == "__main__":
    sys.exit(main())
