"""
Output formatters for the MetaGov CLI.

This module renders command results as a human-readable table, JSON or
YAML.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

import yaml

from metagov.models.decision import Decision


def format_output(
    data: Any,
    output_format: str = "table",
    title: str | None = None,
) -> str:
    """
    Format data for output in the specified format.

    Args:
        data: Data to format.
        output_format: Output format (table, json, yaml).
        title: Optional title for table format.

    Returns:
        Formatted string.
    """
    if output_format == "json":
        return JsonFormatter.format(data)
    elif output_format == "yaml":
        return YamlFormatter.format(data)
    else:
        return TableFormatter.format(data, title=title)


class JsonFormatter:
    """Format data as JSON."""

    @staticmethod
    def format(data: Any, indent: int = 2) -> str:
        """Format data as indented JSON."""
        return json.dumps(
            data,
            indent=indent,
            default=_json_serializer,
            ensure_ascii=False,
        )


class YamlFormatter:
    """Format data as YAML."""

    @staticmethod
    def format(data: Any) -> str:
        """Format data as block-style YAML, keeping key order."""
        return yaml.safe_dump(
            _convert_for_yaml(data),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


class TableFormatter:
    """Format data as a human-readable table."""

    @staticmethod
    def format(
        data: Any,
        title: str | None = None,
        max_width: int = 80,
    ) -> str:
        """
        Format data as aligned key/value lines.

        Args:
            data: Dictionary, list or scalar.
            title: Optional title.
            max_width: Width after which lists wrap one item per line.
        """
        lines: list[str] = []

        if title:
            lines.append(title)
            lines.append("-" * len(title))
            lines.append("")

        data = _convert_for_yaml(data)
        if isinstance(data, dict):
            lines.extend(TableFormatter._format_dict(data, max_width))
        elif isinstance(data, list):
            lines.extend(TableFormatter._format_list(data, max_width))
        else:
            lines.append(str(data))

        return "\n".join(lines)

    @staticmethod
    def _format_dict(
        data: dict[str, Any],
        max_width: int,
        indent: int = 0,
    ) -> list[str]:
        lines: list[str] = []
        prefix = "  " * indent
        width = max((len(str(k)) for k in data), default=0)

        for key, value in data.items():
            label = str(key).ljust(width)

            if isinstance(value, dict):
                lines.append(f"{prefix}{label}:")
                lines.extend(TableFormatter._format_dict(value, max_width, indent + 1))
            elif isinstance(value, list):
                if not value:
                    lines.append(f"{prefix}{label}: []")
                elif all(isinstance(v, (str, int, float, bool)) for v in value):
                    joined = ", ".join(str(v) for v in value)
                    if len(joined) > max_width - len(label) - 4:
                        lines.append(f"{prefix}{label}:")
                        lines.extend(f"{prefix}  - {item}" for item in value)
                    else:
                        lines.append(f"{prefix}{label}: [{joined}]")
                else:
                    lines.append(f"{prefix}{label}:")
                    lines.extend(TableFormatter._format_list(value, max_width, indent + 1))
            else:
                lines.append(f"{prefix}{label}: {'' if value is None else value}")

        return lines

    @staticmethod
    def _format_list(
        data: list[Any],
        max_width: int,
        indent: int = 0,
    ) -> list[str]:
        lines: list[str] = []
        prefix = "  " * indent

        for i, item in enumerate(data):
            if isinstance(item, dict):
                if i > 0:
                    lines.append("")
                lines.append(f"{prefix}[{i + 1}]")
                lines.extend(TableFormatter._format_dict(item, max_width, indent + 1))
            else:
                lines.append(f"{prefix}- {item}")

        return lines

    @staticmethod
    def format_table(
        headers: list[str],
        rows: list[list[Any]],
        max_col_width: int = 40,
    ) -> str:
        """
        Format rows as an ASCII table.

        Args:
            headers: Column headers.
            rows: Data rows.
            max_col_width: Cells longer than this are truncated.
        """
        if not headers:
            return ""

        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row[: len(widths)]):
                widths[i] = max(widths[i], len(_truncate(str(cell), max_col_width)))

        row_format = " | ".join(f"{{:<{w}}}" for w in widths)
        lines = [
            row_format.format(*headers),
            "-+-".join("-" * w for w in widths),
        ]
        for row in rows:
            padded = list(row) + [""] * (len(headers) - len(row))
            lines.append(row_format.format(*(_truncate(str(c), max_col_width) for c in padded)))

        return "\n".join(lines)


def format_decision(decision: Decision) -> str:
    """
    Render a decision for the terminal.

    Shows the outcome, then one row per verdict in priority order, then
    any conditions.
    """
    lines = [
        f"Decision:  {decision.final_status.value}",
        f"Request:   {decision.request_id}",
        f"Dominant:  {decision.dominant_policy}",
    ]
    if decision.reason:
        lines.append(f"Reason:    {decision.reason}")

    if decision.verdicts:
        lines.append("")
        rows = [
            [
                "" if v.priority is None else v.priority,
                v.policy_name,
                v.status.value,
                f"{v.duration_ms:.1f}",
                v.rationale,
            ]
            for v in decision.verdicts
        ]
        lines.append(
            TableFormatter.format_table(
                ["Priority", "Policy", "Verdict", "Time (ms)", "Rationale"],
                rows,
                max_col_width=60,
            )
        )

    if decision.conditions:
        lines.append("")
        lines.append("Conditions:")
        lines.extend(f"  - {c}" for c in decision.conditions)

    return "\n".join(lines)


def _json_serializer(obj: Any) -> Any:
    """Serialize types the json module does not handle."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _convert_for_yaml(data: Any) -> Any:
    """Convert data to plain YAML-compatible types."""
    if isinstance(data, datetime):
        return data.isoformat()
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {k: _convert_for_yaml(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_convert_for_yaml(v) for v in data]
    if isinstance(data, (set, frozenset)):
        return sorted(_convert_for_yaml(v) for v in data)
    if hasattr(data, "to_dict"):
        return _convert_for_yaml(data.to_dict())
    return data


def _truncate(text: str, max_length: int) -> str:
    """Truncate text to a maximum length with an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
