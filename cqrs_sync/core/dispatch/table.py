"""
Exclusive Dispatch Table

Routes one input to exactly one rule. Rules are registered once, when the
owning component is built, and are never reordered: every predicate is
evaluated for every input, so correctness depends on the predicates being
pairwise exclusive, not on registration order.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, TypeVar

from ..errors import AmbiguousRules, DuplicateRule, NoMatchingRule

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Rule(Generic[T]):
    """A named predicate/action pair."""
    name: str
    predicate: Callable[[T], bool]
    action: Callable[[T], Any]

    def __post_init__(self):
        if not self.name:
            raise ValueError("Supply a rule name")
        if not callable(self.predicate):
            raise ValueError("Supply a predicate function")
        if not callable(self.action):
            raise ValueError("Supply an action function")


class DispatchTable(Generic[T]):
    """
    Rule table requiring exactly one predicate match per input.

    Usage:
        table = DispatchTable()
        table.register(Rule("server_error", is_server_error, on_server_error))
        table.register(Rule("success", is_success, on_success))

        result = table.dispatch(response)

    Raises NoMatchingRule when nothing matches and AmbiguousRules when more
    than one rule matches. The action's return value (possibly a coroutine)
    is handed back to the caller untouched.
    """

    def __init__(self, describe: Optional[Callable[[T], str]] = None):
        self._rules: List[Rule[T]] = []
        self._describe = describe or repr

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self._rules]

    def register(self, rule: Rule[T]) -> "DispatchTable[T]":
        """Append a rule. Names must be unique within the table."""
        if rule.name in self.rule_names:
            raise DuplicateRule(rule.name)
        self._rules.append(rule)
        return self

    def match(self, value: T) -> List[Rule[T]]:
        """Return every rule whose predicate accepts the value."""
        return [rule for rule in self._rules if rule.predicate(value)]

    def dispatch(self, value: T) -> Any:
        """Run the single rule accepting the value and return its result."""
        accepting = self.match(value)

        if not accepting:
            raise NoMatchingRule(self._describe(value))

        if len(accepting) > 1:
            raise AmbiguousRules(
                [rule.name for rule in accepting],
                self._describe(value)
            )

        rule = accepting[0]
        logger.debug(f"Dispatching to rule: {rule.name}")
        return rule.action(value)
