from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from graphassert.core.equivalency.models import ComparisonNode, MemberInfo
from graphassert.core.errors import ConfigurationError

EnumHandling = Literal["equality", "name", "value"]
MemberPredicate = Callable[[MemberInfo], bool]
NodePredicate = Callable[[ComparisonNode], bool]
TypePredicate = Callable[[type], bool]
Comparer = Callable[[Any, Any], Any]


def _describe_callable(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or type(fn).__name__


def _require_callable(value: Any, *, role: str) -> None:
    if value is None:
        raise ConfigurationError(f"{role} cannot be None")
    if not callable(value):
        raise ConfigurationError(f"{role} must be callable, got {type(value).__name__}")


@dataclass(slots=True, frozen=True)
class MemberSelectionRule:
    predicate: MemberPredicate
    description: str

    def matches(self, member: MemberInfo) -> bool:
        try:
            return bool(self.predicate(member))
        except Exception as exc:
            raise ConfigurationError(
                f"Member selection rule '{self.description}' failed for member {member.path}: {exc}"
            ) from exc


def _path_is_ancestor(candidate: str, path: str) -> bool:
    return path.startswith(candidate + ".") or path.startswith(candidate + "[")


@dataclass(slots=True, frozen=True)
class ComparerRule:
    predicate: TypePredicate
    comparer: Comparer
    description: str

    def matches(self, value_type: type) -> bool:
        try:
            return bool(self.predicate(value_type))
        except Exception as exc:
            raise ConfigurationError(
                f"Custom comparer rule '{self.description}' could not evaluate type {value_type.__name__}: {exc}"
            ) from exc


@dataclass(slots=True, frozen=True)
class OrderingRule:
    predicate: NodePredicate
    strict: bool
    description: str

    def matches(self, node: ComparisonNode) -> bool:
        try:
            return bool(self.predicate(node))
        except Exception as exc:
            raise ConfigurationError(
                f"Ordering rule '{self.description}' failed at {node.path}: {exc}"
            ) from exc


@dataclass(slots=True, frozen=True)
class EquivalencyOptions:
    include_rules: tuple[MemberSelectionRule, ...] = ()
    exclude_rules: tuple[MemberSelectionRule, ...] = ()
    comparer_rules: tuple[ComparerRule, ...] = ()
    ordering_rules: tuple[OrderingRule, ...] = ()
    strict_ordering: bool = False
    tracing: bool = False
    max_depth: int | None = None
    allow_extra_keys: bool = False
    ignore_missing_members: bool = False
    value_types: tuple[type, ...] = ()
    member_types: tuple[type, ...] = ()
    enum_handling: EnumHandling = "equality"
    float_rel_tol: float | None = None
    float_abs_tol: float = 0.0
    ignore_case: bool = False
    ignore_leading_whitespace: bool = False
    ignore_trailing_whitespace: bool = False
    ignore_newline_style: bool = False

    def is_member_selected(self, member: MemberInfo) -> bool:
        # Exclusions always win over inclusions.
        if any(rule.matches(member) for rule in self.exclude_rules):
            return False
        if not self.include_rules:
            return True
        return any(rule.matches(member) for rule in self.include_rules)

    def find_comparer(self, value_type: type) -> ComparerRule | None:
        for rule in self.comparer_rules:
            if rule.matches(value_type):
                return rule
        return None

    def is_ordering_strict_for(self, node: ComparisonNode) -> bool:
        if any(rule.matches(node) for rule in self.ordering_rules if not rule.strict):
            return False
        if any(rule.matches(node) for rule in self.ordering_rules if rule.strict):
            return True
        return self.strict_ordering

    @property
    def uses_float_tolerance(self) -> bool:
        return self.float_rel_tol is not None or self.float_abs_tol > 0.0

    def to_builder(self) -> EquivalencyOptionsBuilder:
        return EquivalencyOptionsBuilder(self)

    def extend(self, configure: Callable[[EquivalencyOptionsBuilder], Any]) -> EquivalencyOptions:
        builder = self.to_builder()
        result = configure(builder)
        if result is not None:
            builder = result
        if not isinstance(builder, EquivalencyOptionsBuilder):
            raise ConfigurationError("configure callback must return the options builder it was given")
        return builder.build()

    def describe(self) -> str:
        lines: list[str] = []
        if self.strict_ordering:
            lines.append("- Compare collections with strict ordering")
        else:
            lines.append("- Compare collections without regard to ordering")
        for ordering_rule in self.ordering_rules:
            mode = "strict" if ordering_rule.strict else "loose"
            lines.append(f"- Use {mode} ordering when {ordering_rule.description}")
        if self.max_depth is not None:
            lines.append(f"- Recurse at most {self.max_depth} level(s) deep")
        lines.append("- Treat cyclic references as equivalent")
        if self.allow_extra_keys:
            lines.append("- Ignore extra dictionary keys on the subject")
        if self.ignore_missing_members:
            lines.append("- Ignore members missing on the subject")
        if self.enum_handling != "equality":
            lines.append(f"- Compare enums by {self.enum_handling}")
        if self.uses_float_tolerance:
            lines.append(
                f"- Compare floating point values with rel_tol={self.float_rel_tol} abs_tol={self.float_abs_tol}"
            )
        for flag, text in (
            (self.ignore_case, "- Ignore case of strings"),
            (self.ignore_leading_whitespace, "- Ignore leading whitespace of strings"),
            (self.ignore_trailing_whitespace, "- Ignore trailing whitespace of strings"),
            (self.ignore_newline_style, "- Ignore newline style of strings"),
        ):
            if flag:
                lines.append(text)
        for value_type in self.value_types:
            lines.append(f"- Compare {value_type.__name__} by value")
        for member_type in self.member_types:
            lines.append(f"- Compare {member_type.__name__} by its members")
        for include_rule in self.include_rules:
            lines.append(f"- Include {include_rule.description}")
        for exclude_rule in self.exclude_rules:
            lines.append(f"- Exclude {exclude_rule.description}")
        for comparer_rule in self.comparer_rules:
            lines.append(f"- Use {comparer_rule.description}")
        return "\n".join(lines)


_DEFAULT_OPTIONS = EquivalencyOptions()


@dataclass(slots=True)
class EquivalencyOptionsBuilder:
    """Fluent, mutable counterpart of :class:`EquivalencyOptions`.

    Every method validates its arguments immediately and returns the builder,
    so a configure callback can chain calls. ``build()`` produces the frozen
    options the comparator works with.
    """

    base: EquivalencyOptions | None = None
    _include_rules: list[MemberSelectionRule] = field(default_factory=list, init=False)
    _exclude_rules: list[MemberSelectionRule] = field(default_factory=list, init=False)
    _comparer_rules: list[ComparerRule] = field(default_factory=list, init=False)
    _ordering_rules: list[OrderingRule] = field(default_factory=list, init=False)
    _values: dict[str, Any] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        if self.base is None:
            return
        self._include_rules.extend(self.base.include_rules)
        self._exclude_rules.extend(self.base.exclude_rules)
        self._comparer_rules.extend(self.base.comparer_rules)
        self._ordering_rules.extend(self.base.ordering_rules)

    def _set(self, name: str, value: Any) -> EquivalencyOptionsBuilder:
        self._values[name] = value
        return self

    def _get(self, name: str) -> Any:
        if name in self._values:
            return self._values[name]
        if self.base is not None:
            return getattr(self.base, name)
        return getattr(_DEFAULT_OPTIONS, name)

    # Member selection

    def including(self, predicate: MemberPredicate, description: str | None = None) -> EquivalencyOptionsBuilder:
        _require_callable(predicate, role="Member predicate")
        self._include_rules.append(
            MemberSelectionRule(predicate, description or f"members matching {_describe_callable(predicate)}")
        )
        return self

    def excluding(self, predicate: MemberPredicate, description: str | None = None) -> EquivalencyOptionsBuilder:
        _require_callable(predicate, role="Member predicate")
        self._exclude_rules.append(
            MemberSelectionRule(predicate, description or f"members matching {_describe_callable(predicate)}")
        )
        return self

    def including_members_named(self, *names: str) -> EquivalencyOptionsBuilder:
        wanted = _validate_names(names)
        return self.including(lambda member: member.name in wanted, f"members named {', '.join(sorted(wanted))}")

    def excluding_members_named(self, *names: str) -> EquivalencyOptionsBuilder:
        unwanted = _validate_names(names)
        return self.excluding(
            lambda member: member.name in unwanted, f"members named {', '.join(sorted(unwanted))}"
        )

    def including_path(self, path: str) -> EquivalencyOptionsBuilder:
        target = _validate_path(path)
        return self.including(
            lambda member: member.path == target
            or _path_is_ancestor(member.path, target)
            or _path_is_ancestor(target, member.path),
            f"member {target}",
        )

    def excluding_path(self, path: str) -> EquivalencyOptionsBuilder:
        target = _validate_path(path)
        return self.excluding(
            lambda member: member.path == target or _path_is_ancestor(target, member.path),
            f"member {target}",
        )

    def excluding_missing_members(self) -> EquivalencyOptionsBuilder:
        return self._set("ignore_missing_members", True)

    def throwing_on_missing_members(self) -> EquivalencyOptionsBuilder:
        return self._set("ignore_missing_members", False)

    # Custom comparison

    def using(
        self,
        predicate: TypePredicate,
        comparer: Comparer,
        description: str | None = None,
    ) -> EquivalencyOptionsBuilder:
        _require_callable(predicate, role="Custom comparer predicate")
        _require_callable(comparer, role="Custom comparer")
        self._comparer_rules.append(
            ComparerRule(
                predicate=predicate,
                comparer=comparer,
                description=description or f"{_describe_callable(comparer)} when {_describe_callable(predicate)}",
            )
        )
        return self

    def using_for_type(self, value_type: type, comparer: Comparer) -> EquivalencyOptionsBuilder:
        if not isinstance(value_type, type):
            raise ConfigurationError(f"using_for_type expects a type, got {value_type!r}")
        return self.using(
            lambda candidate: issubclass(candidate, value_type),
            comparer,
            f"{_describe_callable(comparer)} for {value_type.__name__}",
        )

    def comparing_by_value(self, value_type: type) -> EquivalencyOptionsBuilder:
        if not isinstance(value_type, type):
            raise ConfigurationError(f"comparing_by_value expects a type, got {value_type!r}")
        members = tuple(t for t in self._get("member_types") if t is not value_type)
        self._set("member_types", members)
        return self._set("value_types", (*self._get("value_types"), value_type))

    def comparing_by_members(self, value_type: type) -> EquivalencyOptionsBuilder:
        if not isinstance(value_type, type):
            raise ConfigurationError(f"comparing_by_members expects a type, got {value_type!r}")
        values = tuple(t for t in self._get("value_types") if t is not value_type)
        self._set("value_types", values)
        return self._set("member_types", (*self._get("member_types"), value_type))

    def comparing_enums_by_name(self) -> EquivalencyOptionsBuilder:
        return self._set("enum_handling", "name")

    def comparing_enums_by_value(self) -> EquivalencyOptionsBuilder:
        return self._set("enum_handling", "value")

    def with_float_tolerance(self, rel_tol: float | None = None, abs_tol: float = 0.0) -> EquivalencyOptionsBuilder:
        if rel_tol is not None and rel_tol < 0:
            raise ConfigurationError("rel_tol must not be negative")
        if abs_tol < 0:
            raise ConfigurationError("abs_tol must not be negative")
        self._set("float_rel_tol", rel_tol if rel_tol is not None else 1e-09)
        return self._set("float_abs_tol", float(abs_tol))

    def ignoring_case(self) -> EquivalencyOptionsBuilder:
        return self._set("ignore_case", True)

    def ignoring_leading_whitespace(self) -> EquivalencyOptionsBuilder:
        return self._set("ignore_leading_whitespace", True)

    def ignoring_trailing_whitespace(self) -> EquivalencyOptionsBuilder:
        return self._set("ignore_trailing_whitespace", True)

    def ignoring_newline_style(self) -> EquivalencyOptionsBuilder:
        return self._set("ignore_newline_style", True)

    # Collections and dictionaries

    def with_strict_ordering(self) -> EquivalencyOptionsBuilder:
        return self._set("strict_ordering", True)

    def without_strict_ordering(self) -> EquivalencyOptionsBuilder:
        return self._set("strict_ordering", False)

    def with_ordering(self, mode: Literal["strict", "loose"]) -> EquivalencyOptionsBuilder:
        if mode not in ("strict", "loose"):
            raise ConfigurationError(f"Unsupported ordering mode: {mode}. Supported: strict, loose")
        return self._set("strict_ordering", mode == "strict")

    def with_strict_ordering_for(self, predicate: NodePredicate, description: str | None = None) -> EquivalencyOptionsBuilder:
        _require_callable(predicate, role="Ordering predicate")
        self._ordering_rules.append(
            OrderingRule(predicate, strict=True, description=description or _describe_callable(predicate))
        )
        return self

    def without_strict_ordering_for(self, predicate: NodePredicate, description: str | None = None) -> EquivalencyOptionsBuilder:
        _require_callable(predicate, role="Ordering predicate")
        self._ordering_rules.append(
            OrderingRule(predicate, strict=False, description=description or _describe_callable(predicate))
        )
        return self

    def allowing_extra_keys(self) -> EquivalencyOptionsBuilder:
        return self._set("allow_extra_keys", True)

    def forbidding_extra_keys(self) -> EquivalencyOptionsBuilder:
        return self._set("allow_extra_keys", False)

    # Recursion and diagnostics

    def with_max_depth(self, depth: int | None) -> EquivalencyOptionsBuilder:
        if depth is not None and (not isinstance(depth, int) or isinstance(depth, bool) or depth < 0):
            raise ConfigurationError(f"max depth must be a non-negative integer or None, got {depth!r}")
        return self._set("max_depth", depth)

    def with_tracing(self, enabled: bool = True) -> EquivalencyOptionsBuilder:
        return self._set("tracing", bool(enabled))

    def build(self) -> EquivalencyOptions:
        return EquivalencyOptions(
            include_rules=tuple(self._include_rules),
            exclude_rules=tuple(self._exclude_rules),
            comparer_rules=tuple(self._comparer_rules),
            ordering_rules=tuple(self._ordering_rules),
            strict_ordering=self._get("strict_ordering"),
            tracing=self._get("tracing"),
            max_depth=self._get("max_depth"),
            allow_extra_keys=self._get("allow_extra_keys"),
            ignore_missing_members=self._get("ignore_missing_members"),
            value_types=self._get("value_types"),
            member_types=self._get("member_types"),
            enum_handling=self._get("enum_handling"),
            float_rel_tol=self._get("float_rel_tol"),
            float_abs_tol=self._get("float_abs_tol"),
            ignore_case=self._get("ignore_case"),
            ignore_leading_whitespace=self._get("ignore_leading_whitespace"),
            ignore_trailing_whitespace=self._get("ignore_trailing_whitespace"),
            ignore_newline_style=self._get("ignore_newline_style"),
        )


def _validate_names(names: Iterable[str]) -> frozenset[str]:
    collected = list(names)
    if not collected:
        raise ConfigurationError("At least one member name must be specified")
    for name in collected:
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Member names must be non-empty strings, got {name!r}")
    return frozenset(collected)


def _validate_path(path: str) -> str:
    if not isinstance(path, str) or not path.strip():
        raise ConfigurationError("Member path must be a non-empty string")
    return path.strip()


__all__ = [
    "ComparerRule",
    "EnumHandling",
    "EquivalencyOptions",
    "EquivalencyOptionsBuilder",
    "MemberSelectionRule",
    "OrderingRule",
]
