"""Per-file import bindings and re-export redirects."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .parser.ast import ExportDecl, ImportDecl


class ImportKind(enum.Enum):
    DEFAULT = "default"
    NAMED = "named"
    NAMESPACE = "namespace"


@dataclass(frozen=True)
class ImportBinding:
    local: str
    module: str
    # Name exported by the target module; the local name for default and
    # namespace imports.
    imported: str
    kind: ImportKind


@dataclass(frozen=True)
class ExportRedirect:
    exported: str
    module: str
    source: str


@dataclass
class BindingTable:
    imports: Dict[str, ImportBinding] = field(default_factory=dict)
    redirects: Dict[str, ExportRedirect] = field(default_factory=dict)
    star_modules: List[str] = field(default_factory=list)

    def record_import(self, names: Iterable[Tuple[str, str, ImportKind]], module: str) -> None:
        """Bind ``(local, imported, kind)`` triples to ``module``.

        A later import of the same local name replaces the earlier one.
        """
        for local, imported, kind in names:
            self.imports[local] = ImportBinding(local=local, module=module, imported=imported, kind=kind)

    def record_export_redirect(self, name: str, module: str, source: Optional[str] = None) -> None:
        self.redirects[name] = ExportRedirect(exported=name, module=module, source=source or name)

    def record_star_redirect(self, module: str) -> None:
        if module not in self.star_modules:
            self.star_modules.append(module)

    def lookup_import(self, name: str) -> Optional[ImportBinding]:
        return self.imports.get(name)

    def lookup_export_redirect(self, name: str) -> Optional[ExportRedirect]:
        return self.redirects.get(name)

    def record_import_decl(self, decl: ImportDecl) -> None:
        names: List[Tuple[str, str, ImportKind]] = []
        if decl.default is not None:
            names.append((decl.default, decl.default, ImportKind.DEFAULT))
        if decl.namespace is not None:
            names.append((decl.namespace, decl.namespace, ImportKind.NAMESPACE))
        for spec in decl.names:
            names.append((spec.local, spec.imported, ImportKind.NAMED))
        self.record_import(names, decl.module)

    def record_export_decl(self, decl: ExportDecl) -> None:
        if decl.module is None:
            # `export { A }` only redirects when A was itself imported.
            for spec in decl.names:
                binding = self.lookup_import(spec.local)
                if binding is not None and binding.kind is not ImportKind.NAMESPACE:
                    self.record_export_redirect(spec.exported, binding.module, binding.imported)
            return
        if decl.star:
            if decl.namespace is None:
                self.record_star_redirect(decl.module)
            return
        for spec in decl.names:
            self.record_export_redirect(spec.exported, decl.module, spec.local)
