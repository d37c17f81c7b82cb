from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

# Values a constant reference can resolve to.
LiteralValue = Union[str, bool]

DEFAULT_PARAM_NAME = "routerParam"


@dataclass(frozen=True)
class AnalyzeResult:
    route_name: str
    component_name: str
    source_file_path: str
    requires_login: bool = False
    has_route_param: bool = False
    route_param_name: str = DEFAULT_PARAM_NAME

    def to_dict(self) -> Dict[str, object]:
        return {
            "routeName": self.route_name,
            "componentName": self.component_name,
            "sourceFilePath": self.source_file_path,
            "requiresLogin": self.requires_login,
            "hasRouteParam": self.has_route_param,
            "routeParamName": self.route_param_name,
        }


@dataclass
class ScanQuery:
    """What a nested scan is looking for, and where it reports findings.

    ``class_name`` names a class or a top-level variable; ``attr_name``
    names a static member of that class (or, alternatively, a top-level
    variable of the scanned file). An ``indexed`` scan covers a package
    entry file: it stops at the first re-export of ``class_name`` and
    records the re-export target in ``resolved_path``.
    """

    class_name: str
    attr_name: Optional[str] = None
    indexed: bool = False
    resolved_path: Optional[Path] = None
    resolved_value: Optional[LiteralValue] = None

    @property
    def done(self) -> bool:
        return self.resolved_value is not None or self.resolved_path is not None
