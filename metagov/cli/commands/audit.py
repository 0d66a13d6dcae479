"""
Audit commands for the MetaGov CLI.

This module implements the 'metagov audit' commands for querying and
exporting the decision audit log.

Usage:
    metagov audit list [--status STATUS] [--limit N]
    metagov audit show REQUEST_ID
    metagov audit stats
    metagov audit export [--export-format json|jsonl] [--output FILE]
"""

import argparse
import json
from collections import deque
from typing import TYPE_CHECKING

from metagov.models.audit import AuditEntry
from metagov.models.decision import DecisionStatus

if TYPE_CHECKING:
    from metagov.cli.main import CLIContext

STATUS_CHOICES = [s.value for s in DecisionStatus]


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the audit command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "audit",
        help="Query and export the decision audit log",
        description="Query and export the append-only history of governance decisions.",
    )

    audit_subparsers = parser.add_subparsers(
        title="audit commands",
        dest="audit_command",
        metavar="<subcommand>",
    )

    list_parser = audit_subparsers.add_parser(
        "list",
        help="List recent decisions",
        description="List the most recent audit entries, oldest first.",
    )
    list_parser.add_argument(
        "--status",
        type=str.upper,
        choices=STATUS_CHOICES,
        help="Only show decisions with this final status",
    )
    list_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum number of entries (default: 50)",
    )
    list_parser.set_defaults(func=run_audit_list)

    show_parser = audit_subparsers.add_parser(
        "show",
        help="Show the decision recorded for a request",
        description="Display the audit entries recorded for a request ID.",
    )
    show_parser.add_argument(
        "request_id",
        help="Change request ID",
    )
    show_parser.set_defaults(func=run_audit_show)

    stats_parser = audit_subparsers.add_parser(
        "stats",
        help="Show decision statistics",
        description="Count recorded decisions by final status.",
    )
    stats_parser.set_defaults(func=run_audit_stats)

    export_parser = audit_subparsers.add_parser(
        "export",
        help="Export the audit log",
        description="Export every audit entry for archiving or reporting.",
    )
    export_parser.add_argument(
        "--export-format",
        choices=["json", "jsonl"],
        default="jsonl",
        help="Export format (default: jsonl)",
    )
    export_parser.add_argument(
        "--output",
        "-o",
        help="Output file path (stdout if not specified)",
    )
    export_parser.set_defaults(func=run_audit_export)

    parser.set_defaults(func=run_audit)


def run_audit(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute audit command (reports a missing subcommand)."""
    from metagov.cli.main import EXIT_ERROR

    ctx.print_error("No audit command specified. Use --help for usage.")
    return EXIT_ERROR


def _summary(entry: AuditEntry) -> dict[str, object]:
    decision = entry.decision
    return {
        "sequence": entry.sequence,
        "request_id": entry.request_id,
        "final_status": decision.final_status.value,
        "dominant_policy": decision.dominant_policy,
        "recorded_at": entry.recorded_at.isoformat(),
        "tags": sorted(entry.request.tags),
    }


def run_audit_list(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the audit list command."""
    from metagov.cli.formatters import TableFormatter, format_output
    from metagov.cli.main import EXIT_ERROR, EXIT_SUCCESS

    if args.limit < 1:
        ctx.print_error("--limit must be at least 1")
        return EXIT_ERROR

    recent: deque[AuditEntry] = deque(maxlen=args.limit)
    for entry in ctx.audit_log.entries():
        if args.status and entry.decision.final_status.value != args.status:
            continue
        recent.append(entry)

    summaries = [_summary(e) for e in recent]

    if ctx.output_format == "table":
        if not summaries:
            ctx.print("No audit entries found.")
            return EXIT_SUCCESS
        rows = [
            [s["sequence"], s["recorded_at"], s["request_id"], s["final_status"], s["dominant_policy"]]
            for s in summaries
        ]
        ctx.print(
            TableFormatter.format_table(
                ["Seq", "Recorded", "Request", "Status", "Dominant"],
                rows,
            )
        )
        ctx.print("")
        ctx.print(f"Total: {len(summaries)} entries")
    else:
        ctx.print(format_output(summaries, ctx.output_format))

    return EXIT_SUCCESS


def run_audit_show(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the audit show command."""
    from metagov.cli.formatters import format_decision, format_output
    from metagov.cli.main import EXIT_ERROR, EXIT_SUCCESS

    entries = ctx.audit_log.find(args.request_id)
    if not entries:
        ctx.print_error(f"No audit entry for request: {args.request_id}")
        return EXIT_ERROR

    if ctx.output_format != "table":
        ctx.print(format_output([e.to_dict() for e in entries], ctx.output_format))
        return EXIT_SUCCESS

    for index, entry in enumerate(entries):
        if index:
            ctx.print("")
        ctx.print(f"Audit Entry #{entry.sequence}")
        ctx.print("=" * 60)
        ctx.print(f"Recorded:    {entry.recorded_at.isoformat()}")
        ctx.print(f"Description: {entry.request.description}")
        ctx.print(f"Tags:        {', '.join(sorted(entry.request.tags)) or '(none)'}")
        ctx.print("")
        ctx.print(format_decision(entry.decision))
        if entry.skipped:
            ctx.print("")
            ctx.print("Skipped:")
            for skipped in entry.skipped:
                ctx.print(f"  {skipped.priority}. {skipped.policy_name}: {skipped.reason}")

    return EXIT_SUCCESS


def run_audit_stats(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the audit stats command."""
    from metagov.cli.formatters import format_output
    from metagov.cli.main import EXIT_SUCCESS

    stats = ctx.audit_log.stats()

    if ctx.output_format == "table":
        total = stats["total"]
        ctx.print("Decision Statistics")
        ctx.print("=" * 50)
        ctx.print("")
        ctx.print(f"Backend: {stats.get('backend', '')}")
        ctx.print(f"Total Decisions: {total}")
        ctx.print("")
        ctx.print("By Status:")
        for status in STATUS_CHOICES:
            count = stats["by_status"].get(status, 0)
            percentage = (count / total * 100) if total else 0
            ctx.print(f"  {status}: {count} ({percentage:.1f}%)")
    else:
        ctx.print(format_output(stats, ctx.output_format))

    return EXIT_SUCCESS


def run_audit_export(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the audit export command."""
    from metagov.cli.main import EXIT_SUCCESS

    entries = [e.to_dict() for e in ctx.audit_log.entries()]

    if args.export_format == "json":
        output_text = json.dumps(entries, indent=2)
    else:
        output_text = "\n".join(json.dumps(e) for e in entries)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output_text)
            if output_text and args.export_format == "jsonl":
                f.write("\n")
        ctx.print(f"Exported {len(entries)} audit entries to {args.output}")
    else:
        ctx.print(output_text)

    return EXIT_SUCCESS
