from __future__ import annotations

import json

import pytest

from routescan.config import GeneratorConfig
from routescan.errors import ConfigError
from routescan.generator import (
    RouteEntry,
    build_route_map,
    index_export_line,
    render_builder,
    run,
    template_model,
)
from routescan.types import AnalyzeResult

HOME_PAGE = """
import { HomeConstants } from '../constants/HomeConstants'

@AppRouter({ name: HomeConstants.HOME, hasParam: true })
@Component
export struct HomePage {
  build() {}
}

@AppRouter({ name: "home/Settings", login: true })
@Component
struct SettingsPage {
  build() {}
}
"""

HOME_CONSTANTS = """
export class HomeConstants {
  static readonly HOME = 'home/Home'
}
"""


def _module(write_tree):
    return write_tree(
        {
            "oh-package.json5": "{ name: 'home' }",
            "src/main/ets/components/HomePage.ets": HOME_PAGE,
            "src/main/ets/constants/HomeConstants.ets": HOME_CONSTANTS,
        }
    )


def test_run_writes_builder_route_map_and_index(write_tree):
    root = _module(write_tree)
    config = GeneratorConfig(
        module_path=str(root),
        module_name="home",
        scan_files=("src/main/ets/components/HomePage",),
    )

    generated = run(config)

    assert [r.result.route_name for r in generated.routes] == ["home/Home", "home/Settings"]
    builder = (root / "src/main/ets/auto_router_generated/RouterBuilder.ets").read_text()
    assert "import { HomePage, SettingsPage } from '../components/HomePage';" in builder
    assert "export function HomePageBuilder(param: ESObject) {\n  HomePage({ routerParam: param })\n}" in builder
    assert "export function SettingsPageBuilder(param: ESObject) {\n  SettingsPage()\n}" in builder

    route_map = json.loads((root / "src/main/resources/base/profile/route_map.json").read_text())
    assert route_map["routerMap"][0] == {
        "name": "home/Home",
        "pageSourceFile": "src/main/ets/auto_router_generated/RouterBuilder.ets",
        "buildFunction": "HomePageBuilder",
        "data": {
            "moduleName": "home",
            "login": "false",
            "hasParam": "true",
            "paramName": "routerParam",
        },
    }
    assert route_map["routerMap"][1]["data"]["login"] == "true"

    index = (root / "Index.ets").read_text()
    assert index.count("export * from './src/main/ets/auto_router_generated/RouterBuilder';") == 1


def test_index_export_is_appended_once(write_tree):
    root = _module(write_tree)
    (root / "Index.ets").write_text("export { HomePage } from './src/main/ets/components/HomePage'\n")
    config = GeneratorConfig(
        module_path=str(root),
        module_name="home",
        scan_files=("src/main/ets/components/HomePage.ets",),
    )

    run(config)
    run(config)

    index = (root / "Index.ets").read_text()
    assert index.startswith("export { HomePage }")
    assert index.count(index_export_line(config)) == 1


def test_main_target_leaves_index_alone(write_tree):
    root = _module(write_tree)
    config = GeneratorConfig(
        module_path=str(root),
        module_name="home",
        scan_files=("src/main/ets/components/HomePage",),
        main_target=True,
    )

    generated = run(config)

    assert generated.index_path is None
    assert not (root / "Index.ets").exists()


def test_no_scan_files_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError):
        run(GeneratorConfig(module_path=str(tmp_path), module_name="home"))


def test_missing_scan_file_is_a_config_error(tmp_path):
    config = GeneratorConfig(module_path=str(tmp_path), module_name="home", scan_files=("src/Nope",))

    with pytest.raises(ConfigError):
        run(config)


def test_render_builder_custom_param_name():
    result = AnalyzeResult(
        route_name="detail",
        component_name="Detail",
        source_file_path="/m/src/Detail.ets",
        has_route_param=True,
        route_param_name="item",
    )
    output = render_builder([RouteEntry(result=result, import_path="../Detail")])

    assert output.startswith("// Generated by routescan. Do not edit.\n")
    assert "import { Detail } from '../Detail';" in output
    assert "@Builder\nexport function DetailBuilder(param: ESObject) {\n  Detail({ item: param })\n}\n" in output


def test_build_route_map_empty():
    config = GeneratorConfig(module_path="/m", module_name="m", scan_files=("a",))

    assert build_route_map([], config) == {"routerMap": []}


BUILDER_TEMPLATE = """// {{moduleName}} via {{libName}}
{{#each routers}}
import { {{view.componentName}} } from '{{{view.importPath}}}';
{{/each}}
{{#each routers}}
@Builder
export function {{view.buildFunction}}(param: ESObject) {
{{#if view.hasParam}}
  {{view.componentName}}({ {{view.paramName}}: param })
{{else}}
  {{view.componentName}}()
{{/if}}
}
// registered as {{router.name}} in {{{router.pageSourceFile}}}
{{/each}}
"""


def test_run_renders_user_builder_template(write_tree):
    root = _module(write_tree)
    (root / "templates").mkdir()
    (root / "templates" / "builder.tpl").write_text(BUILDER_TEMPLATE)
    config = GeneratorConfig(
        module_path=str(root),
        module_name="home",
        scan_files=("src/main/ets/components/HomePage",),
        builder_dir="src/main/ets/generated",
        builder_file="Routes.ets",
        builder_template="templates/builder.tpl",
        lib_name="routerlib",
    )

    generated = run(config)

    assert generated.builder_path == root / "src/main/ets/generated/Routes.ets"
    builder = generated.builder_path.read_text()
    assert "// home via routerlib" in builder
    assert "import { HomePage } from '../components/HomePage';" in builder
    assert "HomePage({ routerParam: param })" in builder
    assert "SettingsPage()" in builder
    assert "// registered as home/Settings in src/main/ets/generated/Routes.ets" in builder
    assert "export * from './src/main/ets/generated/Routes';" in (root / "Index.ets").read_text()


def test_template_model_carries_views_and_routers():
    result = AnalyzeResult(route_name="detail", component_name="Detail", source_file_path="/m/Detail.ets")
    config = GeneratorConfig(module_path="/m", module_name="shop", scan_files=("Detail",))

    model = template_model([RouteEntry(result=result, import_path="../Detail")], config)

    assert model == {
        "moduleName": "shop",
        "libName": "autorouter",
        "routers": [
            {
                "view": {
                    "name": "detail",
                    "componentName": "Detail",
                    "importPath": "../Detail",
                    "buildFunction": "DetailBuilder",
                    "hasParam": False,
                    "paramName": "routerParam",
                },
                "router": {
                    "name": "detail",
                    "pageSourceFile": "src/main/ets/auto_router_generated/RouterBuilder.ets",
                    "buildFunction": "DetailBuilder",
                },
            }
        ],
    }


def test_missing_builder_template_is_a_config_error(write_tree):
    root = _module(write_tree)
    config = GeneratorConfig(
        module_path=str(root),
        module_name="home",
        scan_files=("src/main/ets/components/HomePage",),
        builder_template="templates/absent.tpl",
    )

    with pytest.raises(ConfigError):
        run(config)
