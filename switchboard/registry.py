"""Read-only lookup tables for loaded handler units.

The Registry is built once from the loader's output and never mutated
afterwards; the router and handlers only read from it.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from .exceptions import HandlerConflictError
from .handler_base import CommandUnit, ComponentUnit, HandlerKind

logger = structlog.get_logger("switchboard.loader")

# Separates a component routing prefix from its free-form payload
ROUTING_DELIMITER = ":"


@dataclass(frozen=True)
class LoadWarning:
    """A non-fatal problem found while loading handlers.

    Attributes:
        source: File (or identity) the warning refers to.
        reason: Human-readable explanation.
        kind: Handler kind being loaded when it occurred.
    """
    source: str
    reason: str
    kind: HandlerKind


def split_routing_token(custom_id: str) -> Tuple[str, Optional[str]]:
    """Split a routing token at the first delimiter.

    ``"confirm:42:x"`` -> ``("confirm", "42:x")``; ``"close"`` -> ``("close", None)``.
    """
    prefix, sep, rest = custom_id.partition(ROUTING_DELIMITER)
    return prefix, (rest if sep else None)


class Registry:
    """Command and component lookup tables.

    Use Registry.build() to construct one from loaded units; the
    mappings are exposed as read-only views.
    """

    def __init__(
        self,
        commands: Optional[Dict[str, CommandUnit]] = None,
        components: Optional[Dict[str, ComponentUnit]] = None,
    ):
        self._commands: Dict[str, CommandUnit] = dict(commands or {})
        self._components: Dict[str, ComponentUnit] = dict(components or {})
        self.commands: Mapping[str, CommandUnit] = MappingProxyType(self._commands)
        self.components: Mapping[str, ComponentUnit] = MappingProxyType(self._components)

    @classmethod
    def build(
        cls,
        command_units: Iterable[CommandUnit] = (),
        component_units: Iterable[ComponentUnit] = (),
        strict: bool = False,
    ) -> Tuple["Registry", List[LoadWarning]]:
        """Index units by identity.

        The first unit seen for an identity wins; later duplicates are
        dropped with a warning.

        Args:
            command_units: Loaded command units, in load order.
            component_units: Loaded component units, in load order.
            strict: Raise instead of warning on duplicate identities.

        Returns:
            The Registry and the warnings for dropped duplicates.

        Raises:
            HandlerConflictError: On a duplicate identity when strict.
        """
        warnings: List[LoadWarning] = []
        commands = cls._index(
            ((u.name, u) for u in command_units),
            HandlerKind.COMMAND, strict, warnings,
        )
        components = cls._index(
            ((u.routing_key, u) for u in component_units),
            HandlerKind.COMPONENT, strict, warnings,
        )
        return cls(commands, components), warnings

    @staticmethod
    def _index(pairs, kind: HandlerKind, strict: bool, warnings: List[LoadWarning]) -> Dict[str, Any]:
        table: Dict[str, Any] = {}
        for identity, unit in pairs:
            existing = table.get(identity)
            if existing is None:
                table[identity] = unit
                continue
            if strict:
                raise HandlerConflictError(
                    f"Duplicate {kind.value} identity {identity!r}",
                    identity=identity,
                    sources=[existing.source, unit.source],
                )
            logger.warning(
                "handler_identity_conflict",
                kind=kind.value,
                identity=identity,
                kept=existing.source,
                dropped=unit.source,
            )
            warnings.append(LoadWarning(
                source=unit.source,
                reason=f"duplicate {kind.value} {identity!r}, already defined in {existing.source}",
                kind=kind,
            ))
        return table

    def get_command(self, name: Optional[str]) -> Optional[CommandUnit]:
        """Look up a command unit by name."""
        if not name:
            return None
        return self._commands.get(name)

    def resolve_component(self, custom_id: Optional[str]) -> Optional[ComponentUnit]:
        """Resolve a component routing token to its handler.

        Exact match on the full token first; otherwise the token is split
        on the first ``:`` and only the prefix is looked up. A single
        split, not a longest-prefix search.
        """
        if not custom_id:
            return None
        unit = self._components.get(custom_id)
        if unit is not None:
            return unit
        prefix, payload = split_routing_token(custom_id)
        if payload is None:
            return None
        return self._components.get(prefix)

    def command_payloads(self) -> List[Dict[str, Any]]:
        """The registration batch: wire payloads of all commands, in load order."""
        return [unit.schema.to_payload() for unit in self._commands.values()]

    @property
    def command_names(self) -> frozenset:
        """All registered command names."""
        return frozenset(self._commands.keys())

    def __len__(self) -> int:
        return len(self._commands) + len(self._components)
