"""Handler discovery, validation and registry construction.

Scans a directory of handler files, imports each one as an isolated
module, checks it against the command or component contract, and
turns it into a CommandUnit / ComponentUnit. A file that fails is
skipped with a warning; it never stops the remaining files loading.
"""

import importlib.util
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Iterable, List, Optional, Tuple, Union

import structlog
from pydantic import ValidationError

from .exceptions import HandlerLoadError
from .handler_base import (
    CommandSchema,
    CommandUnit,
    ComponentUnit,
    HandlerKind,
    accepts_context,
)
from .registry import LoadWarning, Registry

logger = structlog.get_logger("switchboard.loader")

# Namespace that loaded handler modules are registered under in sys.modules
MODULE_NAMESPACE = "switchboard_handlers"

Unit = Union[CommandUnit, ComponentUnit]


@dataclass(frozen=True)
class Loaded:
    """A handler file that passed validation."""
    unit: Unit


@dataclass(frozen=True)
class Skipped:
    """A handler file that was excluded, and why."""
    source: str
    reason: str


LoadOutcome = Union[Loaded, Skipped]


@dataclass
class LoadResult:
    """Units loaded from one directory plus any warnings raised on the way."""
    units: List[Unit] = field(default_factory=list)
    warnings: List[LoadWarning] = field(default_factory=list)


class HandlerLoader:
    """Discovers and validates handler files.

    Args:
        disabled: File stems to skip without importing.
    """

    def __init__(self, disabled: Optional[Iterable[str]] = None):
        self._disabled = frozenset(disabled or ())

    def load(self, source_dir: Path, kind: HandlerKind) -> LoadResult:
        """Load every eligible handler file in ``source_dir``.

        A missing directory yields an empty result. Files are visited in
        name order; names starting with ``_`` are ignored.
        """
        result = LoadResult()
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            logger.info("handler_dir_missing", kind=kind.value, path=str(source_dir))
            return result

        for path in sorted(source_dir.glob("*.py")):
            if path.name.startswith("_") or not path.is_file():
                continue
            if path.stem in self._disabled:
                logger.info("handler_skipped_disabled", kind=kind.value, handler=path.stem)
                continue

            outcome = self.load_file(path, kind)
            if isinstance(outcome, Loaded):
                result.units.append(outcome.unit)
            else:
                logger.warning(
                    "handler_invalid",
                    kind=kind.value,
                    file=path.name,
                    reason=outcome.reason,
                )
                result.warnings.append(
                    LoadWarning(source=outcome.source, reason=outcome.reason, kind=kind)
                )

        logger.info(
            "handler_dir_loaded",
            kind=kind.value,
            path=str(source_dir),
            loaded=len(result.units),
            skipped=len(result.warnings),
        )
        return result

    def load_file(self, path: Path, kind: HandlerKind) -> LoadOutcome:
        """Import and validate a single handler file."""
        try:
            module = self._import(path, kind)
            if kind == HandlerKind.COMMAND:
                unit = self._command_unit(module, str(path))
            else:
                unit = self._component_unit(module, str(path))
        except HandlerLoadError as e:
            return Skipped(source=str(path), reason=e.message)
        except Exception as e:
            # Anything raised while importing user code
            return Skipped(
                source=str(path),
                reason=f"import failed: {type(e).__name__}: {e}",
            )
        return Loaded(unit)

    def load_registry(
        self,
        commands_dir: Path,
        components_dir: Path,
        strict: bool = False,
    ) -> Tuple[Registry, List[LoadWarning]]:
        """Load both handler directories and index them into a Registry.

        Raises:
            HandlerConflictError: On a duplicate identity when strict.
        """
        commands = self.load(commands_dir, HandlerKind.COMMAND)
        components = self.load(components_dir, HandlerKind.COMPONENT)
        registry, conflicts = Registry.build(commands.units, components.units, strict=strict)
        warnings = commands.warnings + components.warnings + conflicts
        logger.info(
            "registry_built",
            commands=len(registry.commands),
            components=len(registry.components),
            warnings=len(warnings),
        )
        return registry, warnings

    @staticmethod
    def _import(path: Path, kind: HandlerKind) -> ModuleType:
        stem = re.sub(r"\W", "_", path.stem)
        module_name = f"{MODULE_NAMESPACE}.{kind.value}.{stem}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise HandlerLoadError("not an importable module", source=str(path))
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        return module

    @staticmethod
    def _execute_of(module: ModuleType, source: str, attr: str = "execute"):
        fn = getattr(module, attr, None)
        if fn is None:
            raise HandlerLoadError(f"missing '{attr}'", source=source)
        if not callable(fn):
            raise HandlerLoadError(f"'{attr}' is not callable", source=source)
        pass_context = accepts_context(fn)
        if pass_context is None:
            raise HandlerLoadError(
                f"'{attr}' cannot be called with an interaction argument",
                source=source,
            )
        return fn, pass_context

    def _command_unit(self, module: ModuleType, source: str) -> CommandUnit:
        raw = getattr(module, "schema", None)
        if raw is None:
            raise HandlerLoadError("missing 'schema'", source=source)
        if isinstance(raw, CommandSchema):
            schema = raw
        elif isinstance(raw, dict):
            try:
                schema = CommandSchema.model_validate(raw)
            except ValidationError as e:
                errors = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                    for err in e.errors()
                )
                raise HandlerLoadError(f"invalid 'schema': {errors}", source=source)
        else:
            raise HandlerLoadError(
                f"'schema' must be a dict or CommandSchema, got {type(raw).__name__}",
                source=source,
            )

        execute, pass_context = self._execute_of(module, source)
        autocomplete = None
        autocomplete_pass_context = False
        if getattr(module, "autocomplete", None) is not None:
            autocomplete, autocomplete_pass_context = self._execute_of(
                module, source, attr="autocomplete"
            )

        return CommandUnit(
            schema=schema,
            execute=execute,
            autocomplete=autocomplete,
            source=source,
            pass_context=pass_context,
            autocomplete_pass_context=autocomplete_pass_context,
        )

    def _component_unit(self, module: ModuleType, source: str) -> ComponentUnit:
        routing_key = getattr(module, "routing_key", None)
        if routing_key is None:
            routing_key = getattr(module, "custom_id", None)
        if routing_key is None:
            raise HandlerLoadError("missing 'routing_key'", source=source)
        if not isinstance(routing_key, str) or not routing_key.strip():
            raise HandlerLoadError("'routing_key' must be a non-empty string", source=source)

        execute, pass_context = self._execute_of(module, source)
        return ComponentUnit(
            routing_key=routing_key,
            execute=execute,
            source=source,
            pass_context=pass_context,
        )
