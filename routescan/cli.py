from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import GeneratorConfig, RouterAnnotation, ScanConfig
from .errors import ConfigError, RouteScanError
from .generator import run
from .log import setup_logging
from .scanner import scan


def _scan_config(args: argparse.Namespace) -> ScanConfig:
    return ScanConfig(
        annotation=RouterAnnotation(decorators=tuple(args.annotation or ("AppRouter",))),
        view_keywords=tuple(args.view_keyword or ("struct",)),
        verbose=args.verbose,
    )


def _cmd_scan(args: argparse.Namespace) -> int:
    config = _scan_config(args)
    results = []
    for source in args.sources:
        results.extend(scan(source, config, module_dir=args.module_path))
    if args.json:
        print(json.dumps([result.to_dict() for result in results], indent=2, ensure_ascii=False))
        return 0
    for result in results:
        flags = []
        if result.requires_login:
            flags.append("login")
        if result.has_route_param:
            flags.append(f"param={result.route_param_name}")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"{result.route_name}\t{result.component_name}\t{result.source_file_path}{suffix}")
    return 0


def _cmd_generate(args: argparse.Namespace) -> int:
    layout = {
        key: getattr(args, key)
        for key in ("builder_dir", "builder_file", "router_map_dir", "builder_template", "lib_name")
        if getattr(args, key) is not None
    }
    config = GeneratorConfig(
        module_path=str(args.module_path),
        module_name=args.module_name,
        scan_files=tuple(args.files),
        main_target=args.main_target,
        scan=_scan_config(args),
        **layout,
    )
    generated = run(config)
    for path in generated.written:
        print(path)
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="routescan", description="routescan: extract route metadata from ArkTS sources")
    ap.add_argument("-v", "--verbose", action="store_true", help="Trace constant resolution at debug level")
    ap.add_argument(
        "--annotation",
        action="append",
        metavar="NAME",
        help="Route decorator name (repeatable, default: AppRouter)",
    )
    ap.add_argument(
        "--view-keyword",
        action="append",
        metavar="WORD",
        help="Keyword introducing a decorated view declaration (repeatable, default: struct)",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    scan_ap = sub.add_parser("scan", help="Print the routes declared in source files")
    scan_ap.add_argument("sources", nargs="+", type=Path, help="ArkTS source files")
    scan_ap.add_argument("--module-path", type=Path, help="Module root holding oh-package.json5")
    scan_ap.add_argument("--json", action="store_true", help="Print results as JSON")
    scan_ap.set_defaults(handler=_cmd_scan)

    gen_ap = sub.add_parser("generate", help="Write the route builder, route map and Index export")
    gen_ap.add_argument("files", nargs="+", help="Files to scan, relative to the module path")
    gen_ap.add_argument("--module-path", type=Path, required=True, help="Module root directory")
    gen_ap.add_argument("--module-name", required=True, help="Module name recorded in the route map")
    gen_ap.add_argument(
        "--main-target",
        action="store_true",
        help="Module is the main target: do not touch Index.ets",
    )
    gen_ap.add_argument("--builder-dir", help="Builder directory, relative to the module path")
    gen_ap.add_argument("--builder-file", help="Builder file name (default: RouterBuilder.ets)")
    gen_ap.add_argument("--router-map-dir", help="Route map directory, relative to the module path")
    gen_ap.add_argument(
        "--builder-template",
        metavar="PATH",
        help="Handlebars template for the builder file (moduleName, libName, routers[].view, routers[].router)",
    )
    gen_ap.add_argument("--lib-name", help="Library name passed to the builder template (default: autorouter)")
    gen_ap.set_defaults(handler=_cmd_generate)

    args = ap.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    try:
        return args.handler(args)
    except ConfigError as exc:
        print(f"routescan: configuration error: {exc}", file=sys.stderr)
        return 2
    except RouteScanError as exc:
        print(f"routescan: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
