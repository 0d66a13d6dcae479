"""
Decide command for the MetaGov CLI.

This module implements 'metagov decide', which submits one change
request to the governance engine and reports the decision. The exit
code reflects the outcome so the command can gate scripts and CI jobs.

Usage:
    metagov decide --description TEXT --tag TAG [--tag TAG ...] [--id ID]
    metagov decide --input request.json
"""

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from metagov.exceptions import ValidationError
from metagov.models.decision import DecisionStatus
from metagov.models.request import ChangeRequest

if TYPE_CHECKING:
    from metagov.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the decide command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "decide",
        help="Decide a change request",
        description=(
            "Run the applicable governance policies over a change request "
            "and print the combined decision. Exits 0 when APPROVED, 2 when "
            "BLOCKED and 4 when CONDITIONAL."
        ),
    )
    parser.add_argument(
        "--description",
        "-d",
        default=None,
        help="Free-text description of the change",
    )
    parser.add_argument(
        "--tag",
        "-t",
        dest="tags",
        action="append",
        default=[],
        metavar="TAG",
        help="Context tag such as database-change (repeatable)",
    )
    parser.add_argument(
        "--id",
        dest="request_id",
        default=None,
        help="Request ID (generated if omitted)",
    )
    parser.add_argument(
        "--input",
        "-i",
        metavar="FILE",
        help="Read the change request from a JSON or YAML file ('-' for stdin)",
    )
    parser.set_defaults(func=run_decide)


def build_request(args: argparse.Namespace) -> ChangeRequest:
    """
    Build a ChangeRequest from command-line arguments.

    Values given on the command line override the input file; tags from
    both are combined.

    Raises:
        ValidationError: If the input is unreadable or malformed, or if
            nothing describes the change.
    """
    data: dict[str, Any] = {}
    if args.input:
        data = _read_input(args.input)

    if args.description is not None:
        data["description"] = args.description
    if args.request_id:
        data["id"] = args.request_id
    if args.tags:
        existing = data.get("tags") or []
        if not isinstance(existing, list):
            raise ValidationError("Field 'tags' must be a list of strings")
        data["tags"] = list(existing) + list(args.tags)

    if not data.get("description") and not data.get("tags"):
        raise ValidationError("Provide --description, --tag or --input to describe the change")

    return ChangeRequest.from_dict(data)


def _read_input(source: str) -> dict[str, Any]:
    try:
        if source == "-":
            text = sys.stdin.read()
        else:
            text = Path(source).read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Failed to read request file: {e}", details={"path": source}) from e

    try:
        # JSON documents are valid YAML
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid request file: {e}", details={"path": source}) from e

    if not isinstance(data, dict):
        raise ValidationError("Request file must contain an object", details={"path": source})
    return data


def run_decide(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the decide command."""
    from metagov.cli.formatters import format_decision, format_output
    from metagov.cli.main import EXIT_BLOCKED, EXIT_CONDITIONAL, EXIT_SUCCESS

    request = build_request(args)
    decision = ctx.facade.decide(request)

    if ctx.output_format == "table":
        ctx.print(format_decision(decision))
    else:
        ctx.print(format_output(decision.to_dict(), ctx.output_format))

    if decision.final_status == DecisionStatus.BLOCKED:
        return EXIT_BLOCKED
    if decision.final_status == DecisionStatus.CONDITIONAL:
        return EXIT_CONDITIONAL
    return EXIT_SUCCESS
