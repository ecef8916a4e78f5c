"""Unit tests for template rendering (startforge.engine.template).

Tests cover:
- Package-manager add/run command tables
- Option default resolution
- Template context variables and helpers
- Output path normalisation (.j2, _dot_, __option__, .append, JS extensions)
- process_template_file: rendering, pass-through, ignore_file, error wrapping
- Custom Jinja2 filters
"""

from __future__ import annotations

import pytest

from startforge.engine.template import (
    SkipFile,
    TemplateRenderError,
    create_template_context,
    output_path_for,
    package_manager_add_script,
    package_manager_run_script,
    process_template_file,
    render_template,
    resolve_integration_options,
)


# ---------------------------------------------------------------------------
# Package manager commands
# ---------------------------------------------------------------------------


class TestPackageManagerCommands:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "pm,is_dev,expected",
        [
            ("npm", False, "npm install zod"),
            ("npm", True, "npm install -D zod"),
            ("yarn", True, "yarn add -D zod"),
            ("pnpm", False, "pnpm add zod"),
            ("bun", True, "bun add -d zod"),
            ("deno", True, "deno add zod"),
        ],
    )
    def test_add_script(self, pm, is_dev, expected):
        assert package_manager_add_script(pm, "zod", is_dev) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "pm,expected",
        [
            ("npm", "npm run db:push"),
            ("yarn", "yarn db:push"),
            ("pnpm", "pnpm db:push"),
            ("bun", "bun run db:push"),
            ("deno", "deno task db:push"),
        ],
    )
    def test_run_script(self, pm, expected):
        assert package_manager_run_script(pm, "db:push") == expected

    @pytest.mark.unit
    def test_run_script_with_args(self):
        assert package_manager_run_script("npm", "test", ["--watch", "src"]) == "npm run test --watch src"


# ---------------------------------------------------------------------------
# Option resolution & context
# ---------------------------------------------------------------------------


class TestResolveIntegrationOptions:
    @pytest.mark.unit
    def test_defaults_applied(self, make_integration, make_options):
        integration = make_integration(
            "drizzle",
            options={
                "database": {
                    "type": "select",
                    "label": "Database",
                    "default": "postgres",
                    "options": [{"value": "postgres", "label": "PostgreSQL"}],
                }
            },
        )
        resolved = resolve_integration_options(make_options(chosen_integrations=[integration]))
        assert resolved == {"drizzle": {"database": "postgres"}}

    @pytest.mark.unit
    def test_caller_value_wins(self, make_integration, make_options):
        integration = make_integration(
            "drizzle",
            options={"seed": {"type": "boolean", "label": "Seed", "default": False}},
        )
        options = make_options(
            chosen_integrations=[integration],
            integration_options={"drizzle": {"seed": True}},
        )
        assert resolve_integration_options(options)["drizzle"] == {"seed": True}

    @pytest.mark.unit
    def test_unknown_ids_kept(self, make_options):
        options = make_options(integration_options={"later": {"x": "y"}})
        assert resolve_integration_options(options) == {"later": {"x": "y"}}


class TestCreateTemplateContext:
    @pytest.mark.unit
    def test_basic_variables(self, make_options):
        ctx = create_template_context(make_options(package_manager="pnpm"), "src/a.ts")
        assert ctx["project_name"] == "my-app"
        assert ctx["package_manager"] == "pnpm"
        assert ctx["typescript"] is True
        assert ctx["js"] == "ts"
        assert ctx["jsx"] == "tsx"
        assert ctx["file_router"] is True
        assert ctx["code_router"] is False

    @pytest.mark.unit
    def test_javascript_code_router(self, make_options):
        ctx = create_template_context(
            make_options(typescript=False, mode="code-router"), "src/a.js"
        )
        assert ctx["js"] == "js"
        assert ctx["jsx"] == "jsx"
        assert ctx["code_router"] is True

    @pytest.mark.unit
    def test_integration_enabled_and_hooks(self, make_integration, make_options):
        integration = make_integration(
            "query",
            hooks=[{"type": "root-provider", "jsName": "Q", "path": "src/q.tsx"}],
            routes=[{"path": "src/routes/demo.tsx", "jsName": "Demo", "url": "/demo"}],
        )
        ctx = create_template_context(make_options(chosen_integrations=[integration]), "src/a.ts")
        assert ctx["integration_enabled"] == {"query": True}
        assert [h.js_name for h in ctx["hooks"]] == ["Q"]
        assert [r.url for r in ctx["routes"]] == ["/demo"]

    @pytest.mark.unit
    def test_relative_path_helper_uses_current_file(self, make_options):
        ctx = create_template_context(make_options(), "src/routes/index.tsx")
        assert ctx["relative_path"]("src/lib/db.ts") == "../lib/db.ts"
        assert ctx["relative_path"]("src/lib/db.ts", True) == "../lib/db"

    @pytest.mark.unit
    def test_package_manager_helpers(self, make_options):
        ctx = create_template_context(make_options(package_manager="yarn"), "x")
        assert ctx["get_package_manager_add_script"]("zod") == "yarn add zod"
        assert ctx["get_package_manager_run_script"]("dev") == "yarn dev"

    @pytest.mark.unit
    def test_ignore_file_raises(self, make_options):
        ctx = create_template_context(make_options(), "x")
        with pytest.raises(SkipFile):
            ctx["ignore_file"]()


# ---------------------------------------------------------------------------
# Output paths
# ---------------------------------------------------------------------------


class TestOutputPathFor:
    @pytest.mark.unit
    def test_template_extension_dropped(self):
        assert output_path_for("src/app.tsx.j2") == ("src/app.tsx", False)

    @pytest.mark.unit
    def test_dot_and_option_markers(self):
        assert output_path_for("_dot_env.j2") == (".env", False)
        assert output_path_for("db/__postgres__schema.ts") == ("db/schema.ts", False)

    @pytest.mark.unit
    def test_append_suffix(self):
        assert output_path_for("_dot_env.local.append.j2") == (".env.local", True)

    @pytest.mark.unit
    def test_javascript_extensions(self):
        assert output_path_for("src/a.tsx.j2", typescript=False) == ("src/a.jsx", False)
        assert output_path_for("src/b.ts", typescript=False) == ("src/b.js", False)
        assert output_path_for("src/c.d.css", typescript=False) == ("src/c.d.css", False)


# ---------------------------------------------------------------------------
# process_template_file
# ---------------------------------------------------------------------------


class TestProcessTemplateFile:
    @pytest.mark.unit
    def test_renders_template(self, make_options):
        result = process_template_file(
            "src/name.ts.j2", "export const name = '{{ project_name }}'\n", make_options()
        )
        assert result.path == "src/name.ts"
        assert result.content == "export const name = 'my-app'\n"
        assert result.append is False

    @pytest.mark.unit
    def test_plain_file_not_rendered(self, make_options):
        content = "const x = '{{ not a template }}'"
        result = process_template_file("src/raw.ts", content, make_options())
        assert result.content == content

    @pytest.mark.unit
    def test_ignore_file_returns_none(self, make_options):
        content = "{% if not tailwind %}{{ ignore_file() }}{% endif %}body {}"
        assert process_template_file("src/x.css.j2", content, make_options(tailwind=False)) is None

    @pytest.mark.unit
    def test_ignore_file_not_called(self, make_options):
        content = "{% if not tailwind %}{{ ignore_file() }}{% endif %}body {}"
        result = process_template_file("src/x.css.j2", content, make_options())
        assert result.content == "body {}"

    @pytest.mark.unit
    def test_render_error_wrapped(self, make_options):
        with pytest.raises(TemplateRenderError) as exc_info:
            process_template_file("src/bad.ts.j2", "{% if %}", make_options(), "broken")
        assert exc_info.value.file_path == "src/bad.ts.j2"
        assert exc_info.value.integration_id == "broken"
        assert "Template error in file src/bad.ts.j2 (integration broken)" in str(exc_info.value)

    @pytest.mark.unit
    def test_runtime_error_wrapped(self, make_options):
        with pytest.raises(TemplateRenderError) as exc_info:
            process_template_file("src/bad.ts.j2", "{{ missing() }}", make_options())
        assert str(exc_info.value).startswith("Template error in file src/bad.ts.j2: ")

    @pytest.mark.unit
    def test_hook_import_helpers(self, make_integration, make_options):
        integration = make_integration(
            "query",
            hooks=[
                {"type": "root-provider", "jsName": "Q", "path": "src/integrations/q.tsx"},
                {"type": "root-provider", "jsName": "R", "import": "import { R } from 'r'", "code": "R.init()"},
            ],
        )
        content = (
            "{% for hook in hooks %}{{ hook_import_content(hook) }}|{{ hook_import_code(hook) }}\n"
            "{% endfor %}"
        )
        result = process_template_file(
            "src/routes/list.ts.j2", content, make_options(chosen_integrations=[integration])
        )
        assert result.content == (
            "import Q from '../integrations/q.tsx'|Q\n"
            "import { R } from 'r'|R.init()\n"
        )


class TestFilters:
    @pytest.mark.unit
    def test_case_filters(self):
        rendered = render_template(
            "{{ n | pascal_case }} {{ n | camel_case }} {{ 'demo.clerk' | pascal_case }}",
            {"n": "my-cool_app"},
        )
        assert rendered == "MyCoolApp myCoolApp DemoClerk"
