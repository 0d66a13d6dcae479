"""
Policy pack loader for MetaGov.

This module provides the PolicyPackLoader class for building checklist
policies from YAML policy packs, so organizations can tune or extend
the meta-skills without writing Python.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from metagov.exceptions import PolicyError
from metagov.models.verdict import VerdictStatus
from metagov.policies.builtin import ChecklistPolicy, Requirement


@dataclass
class LoadError:
    """
    A problem found while loading a policy pack.

    Attributes:
        message: Human-readable error description.
        source: File or source identifier.
        line: Line number (1-indexed), 0 if unknown.
        policy: Name or index of the offending policy entry.
    """

    message: str
    source: str = ""
    line: int = 0
    policy: str = ""

    def __str__(self) -> str:
        """Return formatted error message with location."""
        location = ""
        if self.source:
            location = self.source
            if self.line > 0:
                location += f":{self.line}"
            location += ": "
        if self.policy:
            location += f"[{self.policy}] "
        return f"{location}{self.message}"


@dataclass
class LoadResult:
    """
    Result of loading a policy pack.

    Attributes:
        name: Pack name.
        version: Pack version string.
        policies: Policies built from the pack, in file order.
        errors: Problems that prevented one or more policies from loading.
    """

    name: str = ""
    version: str = ""
    policies: list[ChecklistPolicy] = field(default_factory=list)
    errors: list[LoadError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if the pack loaded without errors."""
        return not self.errors and bool(self.policies)


class PolicyPackLoader:
    """
    Loads YAML policy packs into ChecklistPolicy instances.

    Example:
        Loading a pack::

            loader = PolicyPackLoader()
            result = loader.load_file("policies/governance.yaml")

            if result.success:
                registry.register_all(result.policies)
            else:
                for error in result.errors:
                    print(f"Error: {error}")

    Pack Format:
        Basic structure::

            name: org-governance
            version: "1.0.0"
            policies:
              - name: guardrails
                priority: 1
                mandatory: true
                blocking_signals:
                  secrets-exposed: Change exposes credentials
              - name: migration-only
                priority: 2
                triggers: [database-change]
                missing_evidence_status: BLOCK
                required_evidence:
                  - tag: rollback-plan
                    condition: Provide a rollback plan
                  - tag: backup-verified
                    condition: Verify backups
                    when: [data-migration]
    """

    VALID_MISSING_STATUSES = ("CONDITIONAL", "BLOCK")

    def load_file(self, path: str | Path, strict: bool = False) -> LoadResult:
        """
        Load a policy pack from a YAML file.

        Args:
            path: Path to the pack.
            strict: If True, raise PolicyError instead of returning a
                result with errors.

        Returns:
            LoadResult with the built policies or errors.

        Raises:
            PolicyError: In strict mode, if any error was found.
        """
        path = Path(path)
        result = LoadResult()

        if not path.exists():
            result.errors.append(LoadError(f"Policy pack not found: {path}", source=str(path)))
        else:
            try:
                content = path.read_text(encoding="utf-8")
            except OSError as e:
                result.errors.append(LoadError(f"Failed to read file: {e}", source=str(path)))
            else:
                result = self._load_content(content, str(path))

        if strict:
            self._raise_on_errors(result, str(path))
        return result

    def load_string(self, content: str, source: str = "<string>", strict: bool = False) -> LoadResult:
        """
        Load a policy pack from a YAML string.

        Args:
            content: YAML content.
            source: Source identifier for error messages.
            strict: If True, raise PolicyError on any error.

        Returns:
            LoadResult with the built policies or errors.
        """
        result = self._load_content(content, source)
        if strict:
            self._raise_on_errors(result, source)
        return result

    def _raise_on_errors(self, result: LoadResult, source: str) -> None:
        if result.errors:
            raise PolicyError(
                f"Invalid policy pack {source}: {result.errors[0]}",
                details={"errors": [str(e) for e in result.errors]},
            )

    def _load_content(self, content: str, source: str) -> LoadResult:
        result = LoadResult()

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            line = 0
            if hasattr(e, "problem_mark") and e.problem_mark:
                line = e.problem_mark.line + 1
            result.errors.append(LoadError(f"YAML syntax error: {e}", source=source, line=line))
            return result

        if not isinstance(data, dict):
            result.errors.append(LoadError("Policy pack must be a YAML mapping", source=source))
            return result

        result.name = str(data.get("name", ""))
        result.version = str(data.get("version", ""))

        entries = data.get("policies")
        if not isinstance(entries, list) or not entries:
            result.errors.append(
                LoadError("'policies' must be a non-empty list", source=source)
            )
            return result

        seen: set[str] = set()
        for index, entry in enumerate(entries):
            label = f"policies[{index}]"
            if isinstance(entry, dict) and entry.get("name"):
                label = str(entry["name"])
            try:
                policy = self._build_policy(entry)
            except (TypeError, ValueError) as e:
                result.errors.append(LoadError(str(e), source=source, policy=label))
                continue

            if policy.name in seen:
                result.errors.append(
                    LoadError(f"Duplicate policy name '{policy.name}'", source=source, policy=label)
                )
                continue
            seen.add(policy.name)
            result.policies.append(policy)

        if result.policies and not any(p.mandatory for p in result.policies):
            result.errors.append(
                LoadError("Policy pack needs at least one mandatory policy", source=source)
            )

        return result

    def _build_policy(self, entry: Any) -> ChecklistPolicy:
        """Build one checklist policy from a pack entry."""
        if not isinstance(entry, dict):
            raise ValueError("Policy entry must be a mapping")

        name = entry.get("name")
        if not name or not isinstance(name, str):
            raise ValueError("Policy entry requires a string 'name'")

        priority = entry.get("priority")
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValueError(f"'priority' must be an integer, got {priority!r}")

        status_name = str(entry.get("missing_evidence_status", "CONDITIONAL")).upper()
        if status_name not in self.VALID_MISSING_STATUSES:
            raise ValueError(
                f"'missing_evidence_status' must be one of {list(self.VALID_MISSING_STATUSES)}, "
                f"got {status_name!r}"
            )

        triggers = entry.get("triggers") or []
        if not isinstance(triggers, list):
            raise ValueError("'triggers' must be a list of tags")

        signals = entry.get("blocking_signals") or {}
        if not isinstance(signals, dict):
            raise ValueError("'blocking_signals' must be a mapping of tag to reason")

        mandatory = bool(entry.get("mandatory", False))
        if not mandatory and not triggers:
            raise ValueError("Non-mandatory policies need at least one trigger tag")

        return ChecklistPolicy(
            name=name,
            priority=priority,
            mandatory=mandatory,
            description=str(entry.get("description", "")),
            triggers=[str(t) for t in triggers],
            blocking_signals={str(k): str(v) for k, v in signals.items()},
            requirements=self._build_requirements(entry.get("required_evidence") or []),
            missing_evidence_status=VerdictStatus(status_name),
        )

    def _build_requirements(self, items: Any) -> list[Requirement]:
        if not isinstance(items, list):
            raise ValueError("'required_evidence' must be a list")

        requirements = []
        for item in items:
            if not isinstance(item, dict) or not item.get("tag"):
                raise ValueError("Each required_evidence item needs a 'tag'")
            when = item.get("when") or []
            if isinstance(when, str):
                when = [when]
            requirements.append(
                Requirement(
                    evidence=str(item["tag"]),
                    condition=str(item.get("condition") or f"Provide {item['tag']}"),
                    when=frozenset(str(w) for w in when),
                )
            )
        return requirements
