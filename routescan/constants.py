"""Cross-file resolution of symbolic decorator arguments."""

from __future__ import annotations

from pathlib import Path
from typing import FrozenSet, Optional

import structlog

from .bindings import BindingTable, ImportKind
from .config import ScanConfig
from .errors import SourceParseError, SourceReadError
from .parser import parse_source, read_source
from .parser.ast import Attr, Expr, Name
from .resolver import ModuleResolver
from .types import LiteralValue, ScanQuery
from .visitor import DeclarationVisitor

log = structlog.get_logger("routescan.constants")


class ConstantResolver:
    """Resolves `NAME` and `Owner.MEMBER` references to literal values.

    Each lookup runs a nested :class:`DeclarationVisitor` over the target
    file with a fresh binding table. Re-export redirects are followed up to
    ``config.max_redirect_hops`` times, and a file already on the current
    resolution path is never entered again.
    """

    def __init__(self, config: Optional[ScanConfig] = None, module_dir: Optional[Path] = None) -> None:
        self.config = config or ScanConfig()
        self.modules = ModuleResolver(self.config, module_dir)

    def resolve(
        self,
        current_file: Path,
        bindings: BindingTable,
        reference: Expr,
        resolving: FrozenSet[Path] = frozenset(),
    ) -> Optional[LiteralValue]:
        if isinstance(reference, Name):
            local, attr = reference.ident, None
        elif isinstance(reference, Attr) and isinstance(reference.value, Name):
            local, attr = reference.value.ident, reference.attr
        else:
            return None

        binding = bindings.lookup_import(local)
        if binding is None:
            self._trace("constants.not_imported", name=local, file=str(current_file))
            return None
        target = self.modules.resolve(current_file, binding.module)
        if target is None:
            self._trace("constants.module_unresolved", module=binding.module, file=str(current_file))
            return None

        if binding.kind is ImportKind.NAMESPACE:
            if attr is None:
                return None
            query = ScanQuery(class_name=attr)
        else:
            query = ScanQuery(class_name=binding.imported, attr_name=attr)
        query.indexed = target.via_package
        value = self._lookup(target.path, query, hops=0, resolving=resolving)
        self._trace(
            "constants.resolved" if value is not None else "constants.unresolved",
            reference=local if attr is None else f"{local}.{attr}",
            value=value,
        )
        return value

    def _lookup(
        self,
        path: Path,
        query: ScanQuery,
        hops: int,
        resolving: FrozenSet[Path],
    ) -> Optional[LiteralValue]:
        path = path.resolve()
        if path in resolving:
            log.debug("constants.cycle", path=str(path), name=query.class_name)
            return None
        if hops > max(1, self.config.max_redirect_hops):
            log.debug("constants.too_many_hops", path=str(path), name=query.class_name, hops=hops)
            return None
        resolving = resolving | {path}

        visitor = self._scan(path, query, resolving)
        if visitor is None:
            return None
        if query.resolved_value is not None:
            return query.resolved_value

        redirect = visitor.bindings.lookup_export_redirect(query.class_name)
        if query.resolved_path is not None:
            # Indexed scan stopped at the re-export; continue in the target.
            source = redirect.source if redirect is not None else query.class_name
            return self._lookup(query.resolved_path, self._renamed(query, source), hops + 1, resolving)
        if redirect is not None:
            target = self.modules.resolve(path, redirect.module)
            if target is None:
                return None
            follow = self._renamed(query, redirect.source)
            follow.indexed = target.via_package
            return self._lookup(target.path, follow, hops + 1, resolving)

        for module in visitor.bindings.star_modules:
            target = self.modules.resolve(path, module)
            if target is None:
                continue
            follow = self._renamed(query, query.class_name)
            follow.indexed = target.via_package
            value = self._lookup(target.path, follow, hops + 1, resolving)
            if value is not None:
                return value
        return None

    def _scan(self, path: Path, query: ScanQuery, resolving: FrozenSet[Path]) -> Optional[DeclarationVisitor]:
        try:
            source_file = parse_source(read_source(path), filename=str(path))
        except (SourceReadError, SourceParseError) as exc:
            log.debug("constants.scan_failed", path=str(path), error=str(exc))
            return None
        visitor = DeclarationVisitor(path, self.config, resolver=self, query=query, resolving=resolving)
        visitor.visit(source_file)
        return visitor

    @staticmethod
    def _renamed(query: ScanQuery, class_name: str) -> ScanQuery:
        return ScanQuery(class_name=class_name, attr_name=query.attr_name)

    def _trace(self, event: str, **fields) -> None:
        if self.config.verbose:
            log.debug(event, **fields)
