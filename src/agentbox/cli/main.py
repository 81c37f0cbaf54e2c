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

"""Command line entry points for the ``agentbox`` executable."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence

from ..errors import AgentboxError
from ..filesystem import Workspace
from ..runtime.logging import StructuredLogger, configure_logging, get_logger
from ..tools import ToolRegistry


def main(argv: Sequence[str] | None = None) -> int:
    """Run the agentbox CLI."""

    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:  # argparse exits with code 2 on errors
        code = exc.code if isinstance(exc.code, int) else 2
        return int(code)

    configure_logging(level=args.log_level, json_mode=args.json_logs)
    logger = get_logger(__name__, context={"component": "cli"})
    registry = ToolRegistry.default(workspace=Workspace(args.workspace))

    if args.command == "tools":
        return _run_tools(registry)
    return _run_call(registry, args, logger)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentbox",
        description="Invoke workspace-confined agent tools.",
    )
    _ = parser.add_argument(
        "--log-level",
        choices=("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"),
        default=None,
        help="Override the log level emitted by the CLI.",
    )
    _ = parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Emit structured JSON logs (disable with --no-json-logs).",
    )
    _ = parser.add_argument(
        "--workspace",
        default=None,
        help="Workspace root (default: the current directory).",
    )

    subcommands = parser.add_subparsers(dest="command", required=True)
    _ = subcommands.add_parser("tools", help="Print tool definitions as JSON.")

    call_parser = subcommands.add_parser("call", help="Invoke a single tool.")
    _ = call_parser.add_argument("name", help="Tool name, for example read_file.")
    _ = call_parser.add_argument(
        "--args",
        dest="arguments",
        default="{}",
        help="Tool arguments as a JSON object (default: {}).",
    )
    return parser


def _run_tools(registry: ToolRegistry) -> int:
    definitions = [spec.to_json() for spec in registry.definitions()]
    _ = sys.stdout.write(json.dumps(definitions, indent=2) + "\n")
    return 0


def _run_call(
    registry: ToolRegistry, args: argparse.Namespace, logger: StructuredLogger
) -> int:
    try:
        arguments = json.loads(args.arguments)
    except json.JSONDecodeError as error:
        _ = sys.stderr.write(f"error: --args is not valid JSON: {error}\n")
        return 2
    if not isinstance(arguments, dict):
        _ = sys.stderr.write("error: --args must be a JSON object\n")
        return 2

    try:
        result = registry.invoke(args.name, arguments)
    except (AgentboxError, OSError) as error:
        logger.debug(
            "Tool call raised.",
            event="cli.call_failed",
            context={"tool": args.name, "error": repr(error)},
        )
        _ = sys.stderr.write(f"error: {error}\n")
        return 1

    _ = sys.stdout.write(result.output + "\n")
    return 1 if result.error else 0
