"""Generate the route builder source, the route map and the Index export."""

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pybars import Compiler, PybarsError

from .config import GeneratorConfig
from .errors import ConfigError, SourceReadError
from .scanner import scan
from .types import AnalyzeResult

log = structlog.get_logger("routescan.generator")

_SOURCE_SUFFIX = ".ets"


@dataclass(frozen=True)
class RouteEntry:
    result: AnalyzeResult
    # Path of the component's file relative to the builder dir, no suffix.
    import_path: str

    @property
    def build_function(self) -> str:
        return f"{self.result.component_name}Builder"


@dataclass
class GenerationResult:
    routes: List[RouteEntry]
    builder_path: Path
    router_map_path: Path
    index_path: Optional[Path] = None
    written: List[Path] = field(default_factory=list)


def collect_routes(config: GeneratorConfig) -> List[RouteEntry]:
    if not config.scan_files:
        raise ConfigError("no files to scan")
    module_path = Path(config.module_path)
    builder_dir = posixpath.join(module_path.as_posix(), config.builder_dir)
    routes: List[RouteEntry] = []
    for file in config.scan_files:
        source_path = module_path / file
        if source_path.suffix != _SOURCE_SUFFIX:
            source_path = source_path.with_name(source_path.name + _SOURCE_SUFFIX)
        import_path = posixpath.relpath(source_path.as_posix(), builder_dir)
        if import_path.endswith(_SOURCE_SUFFIX):
            import_path = import_path[: -len(_SOURCE_SUFFIX)]
        try:
            results = scan(source_path, config.scan, module_dir=module_path)
        except SourceReadError as exc:
            raise ConfigError(f"scan file {file!r} cannot be read: {exc.reason}") from exc
        for result in results:
            routes.append(RouteEntry(result=result, import_path=import_path))
    return routes


def render_builder(routes: List[RouteEntry]) -> str:
    """ArkTS source registering one `@Builder` function per route."""
    imports: Dict[str, List[str]] = {}
    for route in routes:
        names = imports.setdefault(route.import_path, [])
        if route.result.component_name not in names:
            names.append(route.result.component_name)

    lines = ["// Generated by routescan. Do not edit.", ""]
    for import_path, names in imports.items():
        lines.append(f"import {{ {', '.join(names)} }} from '{import_path}';")
    for route in routes:
        component = route.result.component_name
        if route.result.has_route_param:
            call = f"{component}({{ {route.result.route_param_name}: param }})"
        else:
            call = f"{component}()"
        lines.extend(
            [
                "",
                "@Builder",
                f"export function {route.build_function}(param: ESObject) {{",
                f"  {call}",
                "}",
            ]
        )
    return "\n".join(lines) + "\n"


def build_route_map(routes: List[RouteEntry], config: GeneratorConfig) -> Dict[str, object]:
    return {
        "routerMap": [
            {
                **_router_item(route, config),
                "data": {
                    "moduleName": config.module_name,
                    "login": _js_bool(route.result.requires_login),
                    "hasParam": _js_bool(route.result.has_route_param),
                    "paramName": route.result.route_param_name,
                },
            }
            for route in routes
        ]
    }


def template_model(routes: List[RouteEntry], config: GeneratorConfig) -> Dict[str, object]:
    """Context handed to a user builder template."""
    return {
        "moduleName": config.module_name,
        "libName": config.lib_name,
        "routers": [
            {
                "view": {
                    "name": route.result.route_name,
                    "componentName": route.result.component_name,
                    "importPath": route.import_path,
                    "buildFunction": route.build_function,
                    "hasParam": route.result.has_route_param,
                    "paramName": route.result.route_param_name,
                },
                "router": _router_item(route, config),
            }
            for route in routes
        ],
    }


def render_template(routes: List[RouteEntry], config: GeneratorConfig) -> str:
    template_path = Path(config.builder_template)
    if not template_path.is_absolute():
        template_path = Path(config.module_path) / template_path
    try:
        source = template_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"builder template {str(template_path)!r} cannot be read: {exc}") from exc
    try:
        template = Compiler().compile(source)
        return "".join(template(template_model(routes, config)))
    except PybarsError as exc:
        raise ConfigError(f"builder template {str(template_path)!r} failed to render: {exc}") from exc


def index_export_line(config: GeneratorConfig) -> str:
    builder = config.builder_file
    if builder.endswith(_SOURCE_SUFFIX):
        builder = builder[: -len(_SOURCE_SUFFIX)]
    return f"export * from './{config.builder_dir}/{builder}';"


def run(config: GeneratorConfig) -> GenerationResult:
    routes = collect_routes(config)
    module_path = Path(config.module_path)

    builder_path = module_path / config.builder_dir / config.builder_file
    builder_path.parent.mkdir(parents=True, exist_ok=True)
    if config.builder_template:
        builder_source = render_template(routes, config)
    else:
        builder_source = render_builder(routes)
    builder_path.write_text(builder_source, encoding="utf-8")

    router_map_path = module_path / config.router_map_dir / config.router_map_file
    router_map_path.parent.mkdir(parents=True, exist_ok=True)
    router_map_path.write_text(
        json.dumps(build_route_map(routes, config), indent="\t", ensure_ascii=False),
        encoding="utf-8",
    )

    generated = GenerationResult(
        routes=routes,
        builder_path=builder_path,
        router_map_path=router_map_path,
        written=[builder_path, router_map_path],
    )
    if not config.main_target:
        generated.index_path = _append_index_export(module_path / config.index_file, config)
        generated.written.append(generated.index_path)
    log.info(
        "generate.done",
        module=config.module_name,
        routes=len(routes),
        builder=str(builder_path),
        router_map=str(router_map_path),
    )
    return generated


def _append_index_export(index_path: Path, config: GeneratorConfig) -> Path:
    line = index_export_line(config)
    content = index_path.read_text(encoding="utf-8") if index_path.exists() else ""
    if line not in content:
        content = f"{content}\n{line}"
        index_path.write_text(content, encoding="utf-8")
    return index_path


def _router_item(route: RouteEntry, config: GeneratorConfig) -> Dict[str, object]:
    return {
        "name": route.result.route_name,
        "pageSourceFile": f"{config.builder_dir}/{config.builder_file}",
        "buildFunction": route.build_function,
    }


def _js_bool(value: bool) -> str:
    return "true" if value else "false"
