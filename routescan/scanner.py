from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import structlog

from .config import ScanConfig
from .constants import ConstantResolver
from .parser import parse_source, read_source
from .types import AnalyzeResult
from .visitor import DeclarationVisitor

log = structlog.get_logger("routescan.scanner")


def scan(
    entry_file: str | Path,
    config: Optional[ScanConfig] = None,
    module_dir: Optional[str | Path] = None,
) -> List[AnalyzeResult]:
    """Extract route metadata from one source file.

    ``module_dir`` is the directory whose `oh-package.json5` maps bare
    package names; by default the nearest ancestor holding one is used.
    Raises ``SourceReadError`` / ``SourceParseError`` for the entry file
    only; failures while resolving constants elsewhere drop the affected
    route instead.
    """
    config = config or ScanConfig()
    path = Path(entry_file)
    source_file = parse_source(read_source(path), filename=str(path))
    resolver = ConstantResolver(config, Path(module_dir) if module_dir is not None else None)
    visitor = DeclarationVisitor(path, config, resolver=resolver)
    results = visitor.visit(source_file)
    log.info("scan.done", path=str(path), routes=len(results))
    return results
