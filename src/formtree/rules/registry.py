"""Validator registry for formtree.

Holds named validator factories and resolves rule descriptions into
executable validator functions.
"""

import logging
import re
from collections.abc import Iterable, Mapping

from formtree.errors import RuleResolutionError
from formtree.rules.lexer import LexerError
from formtree.rules.parser import ParseError, RuleCall, parse_rule
from formtree.types import RuleSpec, ValidatorFactory, ValidatorFn

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

REQUIRED_RULE = "required"


class ValidatorRegistry:
    """Registry of named validator factories.

    A factory takes the literal arguments of a rule segment and returns a
    validator function. Registering an existing name replaces the factory,
    which lets applications override a built-in.

    Example:
        registry = ValidatorRegistry.with_builtins()
        registry.register("zip", lambda country="us": make_zip_validator(country))
        validators = registry.resolve("required|zip('ca')")
    """

    def __init__(self, factories: Mapping[str, ValidatorFactory] | None = None):
        self._factories: dict[str, ValidatorFactory] = {}
        if factories:
            self.register_many(factories)

    @classmethod
    def with_builtins(cls) -> "ValidatorRegistry":
        """Create a registry pre-populated with the built-in validators."""
        from formtree.rules.builtins import BUILTIN_FACTORIES

        return cls(BUILTIN_FACTORIES)

    def register(self, name: str, factory: ValidatorFactory) -> None:
        """Register a validator factory by name.

        Args:
            name: Rule name as written in rule strings (e.g. "minLength")
            factory: Callable taking the rule's arguments and returning a validator

        Raises:
            RuleResolutionError: If the name cannot be written in a rule string
        """
        if not _NAME_PATTERN.match(name):
            raise RuleResolutionError(f"Validator name '{name}' is not a valid rule name.", rule=name)
        if name in self._factories:
            logger.debug("Replacing validator factory '%s'", name)
        self._factories[name] = factory

    def register_many(self, factories: Mapping[str, ValidatorFactory]) -> None:
        """Register several factories at once."""
        for name, factory in factories.items():
            self.register(name, factory)

    def get(self, name: str) -> ValidatorFactory:
        """Get a registered factory by name.

        Raises:
            RuleResolutionError: If the name is not registered
        """
        if name not in self._factories:
            raise RuleResolutionError(
                f"Validator '{name}' is not registered. "
                "Available validators: " + ", ".join(self.list_registered()),
                rule=name,
            )
        return self._factories[name]

    def is_registered(self, name: str) -> bool:
        """Check if a validator is registered."""
        return name in self._factories

    def list_registered(self) -> list[str]:
        """List all registered validator names."""
        return sorted(self._factories)

    def unregister(self, name: str) -> None:
        """Remove a factory; unknown names are ignored."""
        self._factories.pop(name, None)

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._factories.clear()

    def copy(self) -> "ValidatorRegistry":
        """Return an independent registry with the same factories."""
        return ValidatorRegistry(self._factories)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def parse(self, rule: str) -> list[RuleCall]:
        """Parse a rule string without instantiating anything.

        Raises:
            RuleResolutionError: If the string is malformed
        """
        try:
            return parse_rule(rule)
        except (LexerError, ParseError) as e:
            raise RuleResolutionError(f"Rule '{rule}' is illegal format: {e}", rule=rule, position=e.position) from e

    def build(self, call: RuleCall) -> ValidatorFn:
        """Invoke the factory named by a parsed segment."""
        factory = self.get(call.name)
        try:
            return factory(*call.args)
        except TypeError as e:
            raise RuleResolutionError(f"Invalid arguments for validator '{call}': {e}", rule=str(call)) from e

    def resolve(self, rules: RuleSpec | None, required: bool = False) -> list[ValidatorFn]:
        """Resolve a rule description into validator functions, in order.

        Args:
            rules: A validator function, a rule string, or a sequence of either
            required: Append the ``required`` rule after the explicit rules

        Returns:
            Validator functions in declaration order

        Raises:
            RuleResolutionError: On malformed strings, unknown names, or bad arguments
        """
        resolved: list[ValidatorFn] = []
        names: set[str] = set()

        for rule in _as_rule_list(rules):
            if isinstance(rule, str):
                if not rule.strip():
                    continue
                for call in self.parse(rule):
                    resolved.append(self.build(call))
                    names.add(call.name)
            elif callable(rule):
                resolved.append(rule)
            else:
                raise RuleResolutionError(f"Unsupported rule {rule!r}; expected a string or a callable.")

        if required and REQUIRED_RULE not in names:
            resolved.append(self.build(RuleCall(REQUIRED_RULE)))

        return resolved


def _as_rule_list(rules: RuleSpec | None) -> Iterable:
    if rules is None:
        return []
    if isinstance(rules, str) or callable(rules):
        return [rules]
    return list(rules)


_default_registry: ValidatorRegistry | None = None


def default_registry() -> ValidatorRegistry:
    """Shared registry used by node registries that are not given one."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ValidatorRegistry.with_builtins()
    return _default_registry


def reset_default_registry() -> None:
    """Drop custom registrations from the shared registry. Primarily for testing."""
    global _default_registry
    _default_registry = None


def register_validator(name: str, factory: ValidatorFactory) -> None:
    """Register a factory on the shared registry."""
    default_registry().register(name, factory)


def resolve(rules: RuleSpec | None, required: bool = False) -> list[ValidatorFn]:
    """Resolve rules against the shared registry."""
    return default_registry().resolve(rules, required=required)
