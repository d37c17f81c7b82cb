"""Module specifier resolution: relative paths, package stores, manifests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import structlog

from .config import ScanConfig
from .errors import ManifestError
from .manifest import FILE_PREFIX, Manifest, load_manifest

log = structlog.get_logger("routescan.resolver")


@dataclass(frozen=True)
class ResolvedModule:
    path: Path
    # True when the file is a package entry point (reached by package name).
    via_package: bool = False


def is_relative_specifier(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../", "/"))


def split_package_specifier(specifier: str) -> Tuple[str, str]:
    """Split `@scope/pkg/sub/file` into (`@scope/pkg`, `sub/file`)."""
    parts = specifier.split("/")
    count = 2 if specifier.startswith("@") else 1
    return "/".join(parts[:count]), "/".join(parts[count:])


def resolve_module(base_dir: str | Path, specifier: str, config: Optional[ScanConfig] = None) -> Optional[Path]:
    """Resolve a module specifier to an existing file, or None.

    Relative specifiers are taken from ``base_dir``. Bare specifiers are
    looked up in the package stores (`oh_modules`, then `node_modules`) of
    ``base_dir`` and each of its ancestors.
    """
    config = config or ScanConfig()
    base = Path(base_dir)
    if is_relative_specifier(specifier):
        return _probe(base / specifier, config)
    for directory in (base, *base.parents):
        for store in config.package_stores:
            found = _probe(directory / store / specifier, config)
            if found is not None:
                return found
    return None


def resolve_bare_package(
    module_dir: str | Path,
    package_name: str,
    config: Optional[ScanConfig] = None,
) -> Optional[Path]:
    """Locate a dependency's entry file through the module's manifest."""
    config = config or ScanConfig()
    module_dir = Path(module_dir)
    name, subpath = split_package_specifier(package_name)
    manifest = _load_manifest_soft(module_dir, config)
    if manifest is None:
        return None
    reference = manifest.dependency(name)
    if reference is None:
        log.debug("resolver.dependency_missing", package=name, manifest=str(manifest.path))
        return None
    if reference.startswith(FILE_PREFIX):
        package_dir = module_dir / reference[len(FILE_PREFIX) :]
    else:
        package_dir = module_dir / config.package_stores[0] / name
    if subpath:
        return _probe(package_dir / subpath, config)
    if package_dir.is_file():
        return package_dir.resolve()
    if not package_dir.is_dir():
        log.debug("resolver.package_dir_missing", package=name, path=str(package_dir))
        return None
    return package_entry(package_dir, config)


def package_entry(directory: Path, config: ScanConfig) -> Optional[Path]:
    manifest = _load_manifest_soft(directory, config)
    if manifest is not None and manifest.main:
        entry = _probe_file(directory / manifest.main, config)
        if entry is not None:
            return entry
    for stem in config.entry_stems:
        entry = _probe_file(directory / stem, config)
        if entry is not None:
            return entry
    return None


def find_module_root(path: str | Path, config: Optional[ScanConfig] = None) -> Optional[Path]:
    """Nearest directory at or above ``path`` holding a package manifest."""
    config = config or ScanConfig()
    start = Path(path)
    if not start.is_dir():
        start = start.parent
    for directory in (start, *start.parents):
        if (directory / config.manifest_name).is_file():
            return directory
    return None


class ModuleResolver:
    """Resolves specifiers as seen from a given source file."""

    def __init__(self, config: ScanConfig, module_dir: Optional[Path] = None) -> None:
        self.config = config
        self.module_dir = Path(module_dir).resolve() if module_dir is not None else None

    def module_dir_for(self, current_file: Path) -> Path:
        current = current_file.resolve()
        if self.module_dir is not None and current.is_relative_to(self.module_dir):
            return self.module_dir
        return find_module_root(current, self.config) or current.parent

    def resolve(self, current_file: Path, specifier: str) -> Optional[ResolvedModule]:
        base_dir = current_file.resolve().parent
        if is_relative_specifier(specifier):
            found = resolve_module(base_dir, specifier, self.config)
            return ResolvedModule(found) if found is not None else None
        found = resolve_bare_package(self.module_dir_for(current_file), specifier, self.config)
        if found is None:
            found = resolve_module(base_dir, specifier, self.config)
        if found is None:
            log.debug("resolver.unresolved", specifier=specifier, importer=str(current_file))
            return None
        return ResolvedModule(found, via_package=not split_package_specifier(specifier)[1])


def _probe(candidate: Path, config: ScanConfig) -> Optional[Path]:
    found = _probe_file(candidate, config)
    if found is not None:
        return found
    if candidate.is_dir():
        return package_entry(candidate, config)
    return None


def _probe_file(candidate: Path, config: ScanConfig) -> Optional[Path]:
    if candidate.is_file():
        return candidate.resolve()
    if not candidate.name:
        return None
    for ext in config.extensions:
        path = candidate.with_name(candidate.name + ext)
        if path.is_file():
            return path.resolve()
    return None


def _load_manifest_soft(directory: Path, config: ScanConfig) -> Optional[Manifest]:
    try:
        return load_manifest(directory, config.manifest_name)
    except ManifestError as exc:
        log.warning("resolver.bad_manifest", directory=str(directory), error=str(exc))
        return None
