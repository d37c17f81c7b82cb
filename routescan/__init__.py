"""Route metadata extraction for ArkTS sources."""

from .config import GeneratorConfig, RouterAnnotation, ScanConfig
from .constants import ConstantResolver
from .errors import ConfigError, ManifestError, RouteScanError, SourceParseError, SourceReadError
from .scanner import scan
from .types import AnalyzeResult, ScanQuery
from .visitor import DeclarationVisitor

__all__ = [
    "AnalyzeResult",
    "ConfigError",
    "ConstantResolver",
    "DeclarationVisitor",
    "GeneratorConfig",
    "ManifestError",
    "RouteScanError",
    "RouterAnnotation",
    "ScanConfig",
    "ScanQuery",
    "SourceParseError",
    "SourceReadError",
    "scan",
]
