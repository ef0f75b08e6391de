# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
MeetCapture CLI.

Usage:
    meetcapture record URL [OPTIONS]   # Record one meeting
    meetcapture serve [OPTIONS]        # Start the recording service
    meetcapture version                # Show version information

Examples:
    # Record 30 minutes to ./meet-recordings
    meetcapture record https://meet.google.com/abc-defg-hij --duration 30

    # Record to S3 (credentials from S3_* environment variables)
    meetcapture record https://meet.google.com/abc-defg-hij --storage remote --group acme

    # Start the service
    meetcapture serve --port 8000

Exit codes:
    0  recording persisted to every destination
    2  recording persisted to some destinations only
    1  failure
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import platform
import sys
from typing import List, Optional

from meetcapture.config import env_settings
from meetcapture.providers import get_provider, list_providers
from meetcapture.session import SessionController, SessionResult
from meetcapture.utils.logger import configure_logging


def get_version() -> str:
    """Get the MeetCapture version."""
    import meetcapture
    return getattr(meetcapture, "__version__", "unknown")


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    version = get_version()

    if args.json:
        info = {
            "meetcapture": version,
            "python": platform.python_version(),
            "platform": platform.system(),
            "architecture": platform.machine(),
        }
        print(json.dumps(info, indent=2))
    else:
        print(f"MeetCapture {version}")

    return 0


def _print_result(result: SessionResult) -> None:
    print(f"Outcome: {result.outcome.value}")
    for location in result.destinations:
        print(f"  saved: {location}")
    if result.persist is not None:
        for failed in result.persist.failed:
            print(f"  failed: {failed.destination} ({failed.error})")
    if result.failed_stage is not None:
        print(f"Failed stage: {result.failed_stage.value}")
        print(f"Error: {result.error_type}: {result.error}")
    if result.screenshot_location:
        print(f"Diagnostic screenshot: {result.screenshot_location}")
    if result.recovered:
        print("Recording was assembled by emergency recovery")


def cmd_record(args: argparse.Namespace) -> int:
    """Record one meeting."""
    settings = env_settings()
    overrides = {
        "meeting_url": args.url,
        "bot_name": args.name,
        "duration_minutes": args.duration,
        "output_directory": args.output_dir,
        "storage_mode": args.storage,
        "output_group": args.group,
        "headless": args.headless,
    }
    settings.update({key: value for key, value in overrides.items() if value is not None})

    controller = SessionController(get_provider(args.provider))
    result = asyncio.run(controller.run_session(settings))

    if args.json:
        print(json.dumps(result.to_dict(include_log=args.include_log), indent=2, default=str))
    else:
        _print_result(result)
    return result.exit_code


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the recording service."""
    import uvicorn

    uvicorn.run(
        "meetcapture.service.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="meetcapture",
        description="MeetCapture - Unattended video-conference recording",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  record      Record one meeting
  serve       Start the MeetCapture API service
  version     Show version information

Examples:
  meetcapture record https://meet.google.com/abc-defg-hij --duration 30
  meetcapture serve --port 8000
""",
    )

    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("MEETCAPTURE_LOG_LEVEL", "INFO").upper(),
        help="Set logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        help="Also write log records to this file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
    )
    version_parser.add_argument(
        "--json", "-j",
        action="store_true",
        help="Output in JSON format",
    )
    version_parser.set_defaults(func=cmd_version)

    # record command
    record_parser = subparsers.add_parser(
        "record",
        help="Record one meeting",
    )
    record_parser.add_argument(
        "url",
        nargs="?",
        default=None,
        help="Meeting URL (default: MEETCAPTURE_MEETING_URL)",
    )
    record_parser.add_argument(
        "--name", "-n",
        help="Bot display name (default: Note Meet Bot)",
    )
    record_parser.add_argument(
        "--duration", "-d",
        type=float,
        help="Recording duration in minutes (default: 60)",
    )
    record_parser.add_argument(
        "--output-dir", "-o",
        help="Directory for local recordings and screenshots (default: ./meet-recordings)",
    )
    record_parser.add_argument(
        "--storage", "-s",
        choices=["local", "remote", "s3", "both"],
        help="Storage mode (default: local)",
    )
    record_parser.add_argument(
        "--group", "-g",
        help="Namespace of remote keys (default: default)",
    )
    record_parser.add_argument(
        "--provider", "-p",
        choices=list_providers(),
        default="google_meet",
        help="Conferencing provider (default: google_meet)",
    )
    record_parser.add_argument(
        "--headless",
        action="store_true",
        default=None,
        help="Run the browser headless (capture may be unreliable)",
    )
    record_parser.add_argument(
        "--no-headless",
        action="store_false",
        dest="headless",
        help="Run the browser with a visible window",
    )
    record_parser.add_argument(
        "--json", "-j",
        action="store_true",
        help="Print the session result as JSON",
    )
    record_parser.add_argument(
        "--include-log",
        action="store_true",
        help="Include the session's diagnostic log in JSON output",
    )
    record_parser.set_defaults(func=cmd_record)

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Start the MeetCapture API service",
    )
    serve_parser.add_argument(
        "--host",
        default=os.environ.get("MEETCAPTURE_HOST", "0.0.0.0"),
        help="Host to bind to (default: 0.0.0.0)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("MEETCAPTURE_PORT", "8000")),
        help="Port to bind to (default: 8000)",
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.log_file:
        os.makedirs(os.path.dirname(os.path.abspath(args.log_file)), exist_ok=True)
    configure_logging(level=args.log_level, log_file=args.log_file)

    if hasattr(args, "func"):
        sys.exit(args.func(args))
    parser.print_help()
    sys.exit(0)


if __name__ == "__main__":
    main()
