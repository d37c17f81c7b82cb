from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class RouterAnnotation:
    """Names of the route decorator and of its argument keys."""

    decorators: Tuple[str, ...] = ("AppRouter",)
    name: str = "name"
    login: str = "login"
    has_param: str = "hasParam"
    param_name: str = "paramName"


@dataclass(frozen=True)
class ScanConfig:
    annotation: RouterAnnotation = field(default_factory=RouterAnnotation)
    # Keywords that introduce a decorated declaration the parser cannot see
    # as a class, e.g. ArkTS `struct`.
    view_keywords: Tuple[str, ...] = ("struct",)
    extensions: Tuple[str, ...] = (".ets", ".ts", ".js")
    manifest_name: str = "oh-package.json5"
    package_stores: Tuple[str, ...] = ("oh_modules", "node_modules")
    entry_stems: Tuple[str, ...] = ("Index", "index")
    max_redirect_hops: int = 8
    verbose: bool = False


@dataclass(frozen=True)
class GeneratorConfig:
    module_path: str
    module_name: str
    scan_files: Tuple[str, ...] = ()
    main_target: bool = False
    builder_dir: str = "src/main/ets/auto_router_generated"
    builder_file: str = "RouterBuilder.ets"
    router_map_dir: str = "src/main/resources/base/profile"
    router_map_file: str = "route_map.json"
    index_file: str = "Index.ets"
    # Handlebars template for the builder source; the built-in layout when unset.
    builder_template: Optional[str] = None
    lib_name: str = "autorouter"
    scan: ScanConfig = field(default_factory=ScanConfig)
