"""Text rules that locate code fragments with regular expressions."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_META_VARIABLE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")
_RULE_SUFFIXES = (".yml", ".yaml")


@dataclass(frozen=True)
class RuleMatch:
    """A span of source text found by a rule."""

    text: str
    start: int
    end: int
    variables: Mapping[str, str] = field(default_factory=dict)
    secondary: tuple[RuleMatch, ...] = ()


@dataclass
class RegexRule:
    """A rule whose matcher is a regular expression.

    Named groups act as meta variables: ``$NAME`` in ``fix`` expands to the
    text captured by group ``NAME``.  When ``inside`` is set, a match only
    counts if it lies strictly within a match of that expression, which is
    then reported as a secondary label.
    """

    id: str
    regex: re.Pattern[str]
    language: str | None = None
    message: str = ""
    severity: str = "hint"
    inside: re.Pattern[str] | None = None
    fix: str | None = None

    def find(self, source: str) -> RuleMatch | None:
        """Return the first non-empty match in ``source``, or None."""
        for found in self.regex.finditer(source):
            if found.start() == found.end():
                continue
            if self.inside is None:
                return self._to_match(found, ())
            container = self._container(source, found)
            if container is not None:
                return self._to_match(found, (container,))
        return None

    def replace(self, source: str) -> str:
        """Apply the fix to the first match and return the new source."""
        if self.fix is None:
            raise ValueError(f"rule {self.id!r} has no fix")
        found = self.find(source)
        if found is None:
            return source
        replacement = self._expand(found.variables)
        return source[: found.start] + replacement + source[found.end :]

    @classmethod
    def from_mapping(cls, data: Any) -> RegexRule:
        """Build a rule from a parsed rule document."""
        if not isinstance(data, Mapping):
            raise ValueError("rule document must be a mapping")
        rule_id = data.get("id")
        if not isinstance(rule_id, str) or not rule_id:
            raise ValueError("rule document needs a string 'id'")
        body = data.get("rule")
        if not isinstance(body, Mapping) or not isinstance(body.get("regex"), str):
            raise ValueError(f"rule {rule_id!r} needs 'rule.regex'")
        try:
            regex = re.compile(body["regex"])
            inside = body.get("inside")
            inside_regex = re.compile(inside) if inside is not None else None
        except re.error as exc:
            raise ValueError(f"rule {rule_id!r} has an invalid expression: {exc}") from exc
        fix = data.get("fix")
        if fix is not None and not isinstance(fix, str):
            raise ValueError(f"rule {rule_id!r} has a non-string fix")
        return cls(
            id=rule_id,
            regex=regex,
            language=data.get("language"),
            message=data.get("message") or "",
            severity=data.get("severity") or "hint",
            inside=inside_regex,
            fix=fix,
        )

    def _container(self, source: str, found: re.Match[str]) -> RuleMatch | None:
        assert self.inside is not None
        for outer in self.inside.finditer(source):
            encloses = outer.start() <= found.start() and found.end() <= outer.end()
            same_span = outer.span() == found.span()
            if encloses and not same_span:
                return RuleMatch(outer.group(0), outer.start(), outer.end())
        return None

    @staticmethod
    def _to_match(found: re.Match[str], secondary: tuple[RuleMatch, ...]) -> RuleMatch:
        variables = {name: value or "" for name, value in found.groupdict().items()}
        return RuleMatch(found.group(0), found.start(), found.end(), variables, secondary)

    def _expand(self, variables: Mapping[str, str]) -> str:
        assert self.fix is not None

        def substitute(meta: re.Match[str]) -> str:
            name = meta.group(1)
            if name not in variables:
                raise ValueError(f"fix of rule {self.id!r} uses undefined variable ${name}")
            return variables[name]

        return _META_VARIABLE.sub(substitute, self.fix)


class RuleCollection:
    """Rules looked up by id."""

    def __init__(self, rules: Iterable[RegexRule] = ()) -> None:
        self._rules: dict[str, RegexRule] = {}
        for rule in rules:
            if rule.id in self._rules:
                raise ValueError(f"duplicate rule id {rule.id!r}")
            self._rules[rule.id] = rule

    def get_rule(self, rule_id: str) -> RegexRule | None:
        return self._rules.get(rule_id)

    def __iter__(self) -> Iterator[RegexRule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


def _rule_files(directory: Path) -> list[Path]:
    return sorted(
        path for path in directory.rglob("*") if path.is_file() and path.suffix in _RULE_SUFFIXES
    )


def load_rules(rule_dirs: Iterable[str | Path]) -> RuleCollection:
    """Read every YAML rule file below the given directories."""
    rules = []
    for directory in rule_dirs:
        for path in _rule_files(Path(directory)):
            try:
                documents = list(yaml.safe_load_all(path.read_text(encoding="utf-8")))
            except yaml.YAMLError as exc:
                raise ValueError(f"cannot parse rule file {path}: {exc}") from exc
            rules.extend(RegexRule.from_mapping(doc) for doc in documents if doc is not None)
    return RuleCollection(rules)