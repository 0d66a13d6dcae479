"""
Policy commands for the MetaGov CLI.

This module implements the 'metagov policy' commands for inspecting
the registered meta-skills and validating YAML policy packs.

Usage:
    metagov policy list
    metagov policy validate FILE
"""

import argparse
from typing import TYPE_CHECKING

from metagov.engine.registry import PolicyRegistry
from metagov.exceptions import RegistryError
from metagov.policies.builtin import default_policies, describe_policy
from metagov.policies.loader import PolicyPackLoader

if TYPE_CHECKING:
    from metagov.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the policy command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "policy",
        help="Inspect and validate policies",
        description="List the registered policies or validate a policy pack.",
    )

    policy_subparsers = parser.add_subparsers(
        title="policy commands",
        dest="policy_command",
        metavar="<subcommand>",
    )

    list_parser = policy_subparsers.add_parser(
        "list",
        help="List registered policies in priority order",
        description=(
            "List the policies the engine would consult: the configured "
            "policy pack, or the built-in meta-skills."
        ),
    )
    list_parser.set_defaults(func=run_policy_list)

    validate_parser = policy_subparsers.add_parser(
        "validate",
        help="Validate a policy pack",
        description="Check a YAML policy pack for errors without loading it.",
    )
    validate_parser.add_argument(
        "path",
        metavar="FILE",
        help="Path to the policy pack",
    )
    validate_parser.set_defaults(func=run_policy_validate)

    parser.set_defaults(func=lambda args, ctx: run_policy_help(parser, args, ctx))


def run_policy_help(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    ctx: "CLIContext",
) -> int:
    """Show help when no subcommand is specified."""
    parser.print_help()
    return 0


def run_policy_list(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the policy list command."""
    from metagov.cli.formatters import TableFormatter, format_output
    from metagov.cli.main import EXIT_SUCCESS

    policies_path = ctx.config.policies_path
    if policies_path:
        policies = PolicyPackLoader().load_file(policies_path, strict=True).policies
    else:
        policies = default_policies()
    registry = PolicyRegistry(policies)

    entries = [describe_policy(p) for p in registry.all()]

    if ctx.output_format == "table":
        rows = [
            [
                e["priority"],
                e["name"],
                "yes" if e["mandatory"] else "",
                ", ".join(e.get("triggers", [])) or ("(all)" if e["mandatory"] else ""),
            ]
            for e in entries
        ]
        ctx.print(TableFormatter.format_table(["Priority", "Name", "Mandatory", "Triggers"], rows))
        ctx.print("")
        source = policies_path or "built-in meta-skills"
        ctx.print(f"Total: {len(entries)} policies ({source})")
    else:
        ctx.print(format_output(entries, ctx.output_format))

    return EXIT_SUCCESS


def run_policy_validate(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the policy validate command."""
    from metagov.cli.main import EXIT_SUCCESS, EXIT_VALIDATION_ERROR

    ctx.print(f"Validating: {args.path}")
    result = PolicyPackLoader().load_file(args.path)

    if result.errors:
        ctx.print("")
        ctx.print("Errors:")
        for error in result.errors:
            ctx.print_error(f"  {error}")
        return EXIT_VALIDATION_ERROR

    try:
        PolicyRegistry(result.policies)
    except RegistryError as e:
        ctx.print_error(f"  {e.message}")
        return EXIT_VALIDATION_ERROR

    ctx.print("")
    ctx.print("Policy pack is valid.")
    ctx.print(f"  Name: {result.name or '(unnamed)'}")
    ctx.print(f"  Version: {result.version or '(none)'}")
    ctx.print(f"  Policies: {len(result.policies)}")
    ctx.print(f"  Mandatory: {', '.join(p.name for p in result.policies if p.mandatory)}")
    return EXIT_SUCCESS
