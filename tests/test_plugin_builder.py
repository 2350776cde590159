"""
Tests for per-plugin builds and file processing.
"""
from pathlib import Path

import pytest

from hotforge.build import (
    EsbuildCompiler,
    FileProcessor,
    PluginBuilder,
    ViteUiPageBuilder,
    categorize,
    categorize_outputs,
    prepare_manifest,
    run_process,
)
from hotforge.config import BuildOptions
from hotforge.errors import CompilerError, ManifestError, PluginBuildError
from hotforge.manifest import PluginManifest
from hotforge.plugins import FileCategory, ProcessedFile, load_plugin
from hotforge.resources import parse_declared_name

from conftest import FakeCompiler, write_plugin


class TestCategorize:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("client/main.ts", FileCategory.CLIENT),
            ("server/db/query.ts", FileCategory.SERVER),
            ("shared/config.ts", FileCategory.SHARED),
            ("translations/en.json", FileCategory.OTHER),
            ("client.ts", FileCategory.OTHER),
        ],
    )
    def test_categorize(self, path, expected):
        assert categorize(path) is expected

    def test_categorize_outputs(self):
        processed = [
            ProcessedFile(Path("client/a.ts"), Path("client/a.js"), FileCategory.CLIENT),
            None,
            ProcessedFile(Path("data.json"), Path("data.json"), FileCategory.OTHER),
        ]
        grouped = categorize_outputs(processed)
        assert grouped[FileCategory.CLIENT] == ["client/a.js"]
        assert grouped[FileCategory.SERVER] == []
        assert grouped[FileCategory.OTHER] == ["data.json"]


class TestEsbuildCompiler:
    def test_arguments(self):
        compiler = EsbuildCompiler()
        args = compiler.arguments(
            Path("src/client/main.ts"),
            Path("dist/client/main.js"),
            platform="browser",
            options=BuildOptions(minify=True, source_maps=False),
        )
        assert args[:3] == ["npx", "esbuild", "src/client/main.ts"]
        assert "--bundle" in args
        assert "--platform=browser" in args
        assert "--minify" in args
        assert "--sourcemap=external" not in args

    def test_jsx_flag(self):
        args = EsbuildCompiler().arguments(
            Path("Page.tsx"), Path("Page.js"), platform="browser", options=BuildOptions()
        )
        assert "--jsx=automatic" in args
        assert "--sourcemap=external" in args


class TestViteUiPageBuilder:
    def test_app_entry_imports_page(self, tmp_path):
        plugin_dir = write_plugin(tmp_path / "plugins", "a", files={"html/Page.tsx": ""})
        plugin = load_plugin(plugin_dir, tmp_path / "plugins")
        builder = ViteUiPageBuilder(tmp_path / "webview")

        entry = builder.app_entry(plugin)

        assert "import Page from '../../plugins/a/html/Page.tsx';" in entry
        assert "return <Page />;" in entry


class TestFileProcessor:
    """Tests for compile, copy and skip decisions."""

    @pytest.mark.asyncio
    async def test_script_compiled_to_js(self, tmp_path):
        plugin_dir = write_plugin(tmp_path, "a", files={"server/main.ts": "export {}"})
        plugin = load_plugin(plugin_dir, tmp_path)
        compiler = FakeCompiler()
        out = tmp_path / "out"

        source = next(f for f in plugin.files if f.name == "main.ts")
        result = await FileProcessor(compiler).process(source, out)

        assert result.output_path == Path("server/main.js")
        assert result.category is FileCategory.SERVER
        assert (out / "server" / "main.js").is_file()
        assert compiler.calls[0][2] == "node"

    @pytest.mark.asyncio
    async def test_client_targets_browser(self, tmp_path):
        plugin = load_plugin(write_plugin(tmp_path, "a", files={"client/main.ts": ""}), tmp_path)
        compiler = FakeCompiler()
        source = next(f for f in plugin.files if f.name == "main.ts")

        await FileProcessor(compiler).process(source, tmp_path / "out")

        assert compiler.calls[0][2] == "browser"

    @pytest.mark.asyncio
    async def test_other_files_copied(self, tmp_path):
        plugin = load_plugin(write_plugin(tmp_path, "a", files={"data/items.json": "[1]"}), tmp_path)
        compiler = FakeCompiler()
        source = next(f for f in plugin.files if f.name == "items.json")

        result = await FileProcessor(compiler).process(source, tmp_path / "out")

        assert result.output_path == Path("data/items.json")
        assert (tmp_path / "out" / "data" / "items.json").read_text() == "[1]"
        assert compiler.calls == []

    @pytest.mark.asyncio
    async def test_descriptor_and_declarations_skipped(self, tmp_path):
        plugin = load_plugin(write_plugin(tmp_path, "a", files={"types.d.ts": ""}), tmp_path)
        processor = FileProcessor(FakeCompiler())

        results = [await processor.process(f, tmp_path / "out") for f in plugin.files]

        assert results == [None, None]

    @pytest.mark.asyncio
    async def test_html_left_to_ui_builder(self, tmp_path):
        plugin = load_plugin(write_plugin(tmp_path, "a", files={"html/Page.tsx": ""}), tmp_path)
        compiler = FakeCompiler()
        page = next(f for f in plugin.files if f.name == "Page.tsx")

        assert await FileProcessor(compiler).process(page, tmp_path / "out", has_ui_page=True) is None
        assert compiler.calls == []


class TestPluginBuilder:
    """Tests for building one plugin."""

    @pytest.mark.asyncio
    async def test_build_writes_output_and_manifest(self, tmp_path):
        plugins = tmp_path / "plugins"
        plugin_dir = write_plugin(
            plugins,
            "[misc]/example",
            {"name": "example", "client_scripts": ["client/*.ts"], "custom": True},
            {"client/main.ts": "", "server/main.ts": "", "config.lua": "Config = {}"},
        )
        plugin = load_plugin(plugin_dir, plugins)
        dist = tmp_path / "dist"

        built = await PluginBuilder(FileProcessor(FakeCompiler())).build(plugin, dist)

        output = dist / "[misc]" / "example"
        assert built.name == "example"
        assert built.output.output_dir == output
        assert (output / "client" / "main.js").is_file()
        assert (output / "config.lua").read_text() == "Config = {}"
        assert not (output / "plugin.json").exists()

        manifest = (output / "fxmanifest.lua").read_text()
        assert parse_declared_name(manifest) == "example"
        assert "'client/main.js'," in manifest
        assert "'server/main.js'," in manifest
        assert "client/*.ts" not in manifest

    @pytest.mark.asyncio
    async def test_compiler_error_becomes_plugin_error(self, tmp_path):
        plugin = load_plugin(write_plugin(tmp_path, "a", files={"client/main.ts": ""}), tmp_path)
        builder = PluginBuilder(FileProcessor(FakeCompiler(fail_on="main.ts")))

        with pytest.raises(PluginBuildError) as exc_info:
            await builder.build(plugin, tmp_path / "dist")

        assert exc_info.value.plugin_name == "a"
        assert "Compilation failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_descriptor_field(self, tmp_path):
        plugin = load_plugin(write_plugin(tmp_path, "a", {"name": "a", "client_scripts": {"not": "a list"}}), tmp_path)

        with pytest.raises(ManifestError):
            await PluginBuilder(FileProcessor(FakeCompiler())).build(plugin, tmp_path / "dist")

    @pytest.mark.asyncio
    async def test_ui_plugin_manifest(self, tmp_path):
        plugin = load_plugin(write_plugin(tmp_path, "a", files={"html/Page.tsx": ""}), tmp_path)

        await PluginBuilder(FileProcessor(FakeCompiler())).build(plugin, tmp_path / "dist")

        manifest = (tmp_path / "dist" / "a" / "fxmanifest.lua").read_text()
        assert "ui_page 'html/index.html'" in manifest
        assert "'html/**/*'," in manifest
        assert "dependency 'webview'" in manifest

    @pytest.mark.asyncio
    async def test_single_string_script_list(self, tmp_path):
        plugin = load_plugin(
            write_plugin(tmp_path, "a", {"name": "a", "client_scripts": "client/*.ts"}, {"client/main.ts": ""}),
            tmp_path,
        )

        await PluginBuilder(FileProcessor(FakeCompiler())).build(plugin, tmp_path / "dist")

        manifest = (tmp_path / "dist" / "a" / "fxmanifest.lua").read_text()
        assert "client_scripts {\n    'client/main.js',\n}" in manifest


class TestPrepareManifest:
    def test_core_plugin_gets_no_webview_dependency(self, tmp_path):
        plugin = load_plugin(write_plugin(tmp_path, "core", {"name": "core"}, {"html/Page.tsx": ""}), tmp_path)
        generated = {category: [] for category in FileCategory}

        manifest = prepare_manifest(plugin, PluginManifest(name="core"), generated)

        assert manifest.dependencies is None
        assert manifest.ui_page is None


class TestRunProcess:
    @pytest.mark.asyncio
    async def test_missing_executable(self):
        with pytest.raises(CompilerError, match="Executable not found"):
            await run_process(["hotforge-no-such-tool"], source="main.ts")

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        with pytest.raises(CompilerError) as exc_info:
            await run_process(["sh", "-c", "echo broken >&2; exit 3"], source="main.ts")
        assert exc_info.value.returncode == 3
        assert str(exc_info.value) == "main.ts: broken (exit=3)"

    @pytest.mark.asyncio
    async def test_stdout_returned(self):
        assert await run_process(["sh", "-c", "echo ok"], source="x") == "ok\n"
