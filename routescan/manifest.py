"""Reader for `oh-package.json5` package manifests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import json5
import structlog

from .errors import ManifestError

log = structlog.get_logger("routescan.manifest")

MANIFEST_NAME = "oh-package.json5"
FILE_PREFIX = "file:"


@dataclass
class Manifest:
    path: Path
    name: Optional[str] = None
    version: Optional[str] = None
    main: Optional[str] = None
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)

    def dependency(self, package_name: str) -> Optional[str]:
        """Version or `file:` reference for a package, runtime deps first."""
        if package_name in self.dependencies:
            return self.dependencies[package_name]
        return self.dev_dependencies.get(package_name)


def parse_json5(text: str) -> object:
    try:
        return json5.loads(text)
    except ValueError as exc:
        raise ManifestError(f"invalid JSON5: {exc}") from exc


def load_manifest(module_dir: str | Path, manifest_name: str = MANIFEST_NAME) -> Optional[Manifest]:
    """Read ``<module_dir>/<manifest_name>``.

    Returns None when the file does not exist; raises ManifestError when it
    exists but cannot be read or is not a JSON5 object.
    """
    path = Path(module_dir) / manifest_name
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"{path}: {exc}") from exc
    try:
        data = parse_json5(text)
    except ManifestError as exc:
        raise ManifestError(f"{path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{path}: top-level value is not an object")
    manifest = Manifest(
        path=path,
        name=_optional_str(data.get("name")),
        version=_optional_str(data.get("version")),
        main=_optional_str(data.get("main")),
        dependencies=_string_table(data.get("dependencies")),
        dev_dependencies=_string_table(data.get("devDependencies")),
    )
    log.debug("manifest.loaded", path=str(path), dependencies=len(manifest.dependencies))
    return manifest


def _optional_str(value: object) -> Optional[str]:
    return value if isinstance(value, str) else None


def _string_table(value: object) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {key: str(item) for key, item in value.items() if isinstance(item, (str, int, float))}
