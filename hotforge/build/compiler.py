"""
Artifact compilers.

The build core treats compilers as collaborators behind two small
protocols:

- ArtifactCompiler: one script source in, one bundled script out
- UiPageBuilder: one plugin's `html/Page.tsx` in, a built `html/` dir out

The default implementations shell out to esbuild and vite through
asyncio subprocesses so compilation never blocks the event loop.
FileProcessor decides, per plugin file, whether to compile, copy or skip.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, Sequence

from hotforge.config import BuildOptions
from hotforge.errors import CompilerError
from hotforge.plugins import FileCategory, Plugin, PluginFile, ProcessedFile

logger = logging.getLogger(__name__)

SCRIPT_SUFFIXES = frozenset({".ts", ".tsx", ".jsx", ".js"})


# =============================================================================
# Subprocess Helper
# =============================================================================


async def run_process(
    args: Sequence[str],
    *,
    source: str,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> str:
    """
    Run an external tool and return its stdout.

    Raises:
        CompilerError: If the tool is missing or exits non-zero
    """
    logger.debug(f"Executing: {' '.join(args)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd else None,
            env={**os.environ, **(env or {})},
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise CompilerError(source, f"Executable not found: {args[0]}") from e

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        message = stderr.decode(errors="replace").strip() or "Build command failed"
        raise CompilerError(source, message, returncode=process.returncode)
    return stdout.decode(errors="replace")


# =============================================================================
# Protocols
# =============================================================================


class ArtifactCompiler(Protocol):
    """Bundles one script source into one output file."""

    async def compile(
        self,
        source: Path,
        output: Path,
        *,
        platform: str,
        options: BuildOptions,
    ) -> None:
        ...


class UiPageBuilder(Protocol):
    """Builds a plugin's UI page into an output directory."""

    async def build(self, plugin: Plugin, output_dir: Path, options: BuildOptions) -> Path:
        ...


# =============================================================================
# esbuild
# =============================================================================


class EsbuildCompiler:
    """
    Bundles scripts with esbuild.

    Output is an IIFE bundle; server scripts target node, everything
    else targets the browser runtime of the game client.
    """

    def __init__(
        self,
        command: Sequence[str] = ("npx", "esbuild"),
        target: str = "es2017",
        cwd: Path | None = None,
    ):
        self.command = tuple(command)
        self.target = target
        self.cwd = cwd

    def arguments(
        self,
        source: Path,
        output: Path,
        *,
        platform: str,
        options: BuildOptions,
    ) -> list[str]:
        args = [
            *self.command,
            str(source),
            "--bundle",
            f"--outfile={output}",
            "--format=iife",
            f"--target={self.target}",
            f"--platform={platform}",
        ]
        if source.suffix in (".tsx", ".jsx"):
            args.append("--jsx=automatic")
        if options.minify:
            args.append("--minify")
        if options.source_maps:
            args.append("--sourcemap=external")
        return args

    async def compile(
        self,
        source: Path,
        output: Path,
        *,
        platform: str,
        options: BuildOptions,
    ) -> None:
        output.parent.mkdir(parents=True, exist_ok=True)
        await run_process(
            self.arguments(source, output, platform=platform, options=options),
            source=str(source),
            cwd=self.cwd,
        )


# =============================================================================
# Vite UI pages
# =============================================================================


class ViteUiPageBuilder:
    """
    Builds a plugin's `html/Page.tsx` with the shared vite project.

    An `App.tsx` entry importing the page is generated inside the UI
    framework directory, then `vite build` writes straight into the
    plugin's output `html/` directory.
    """

    def __init__(
        self,
        webview_dir: Path,
        command: Sequence[str] = ("npx", "vite", "build"),
    ):
        self.webview_dir = Path(webview_dir)
        self.command = tuple(command)

    def app_entry(self, plugin: Plugin) -> str:
        src_dir = self.webview_dir / "src"
        import_path = Path(os.path.relpath(plugin.ui_page, src_dir)).as_posix()
        if not import_path.startswith("."):
            import_path = f"./{import_path}"
        generated_on = datetime.now(timezone.utc).isoformat()
        return (
            f"// Generated for {plugin.name} on {generated_on}\n\n"
            f"import Page from '{import_path}';\n\n"
            "function App() {\n"
            "  return <Page />;\n"
            "}\n\n"
            "export default App;\n"
        )

    async def build(self, plugin: Plugin, output_dir: Path, options: BuildOptions) -> Path:
        if not self.webview_dir.is_dir():
            raise CompilerError(plugin.name, f"Webview directory not found: {self.webview_dir}")
        if not plugin.ui_page.is_file():
            raise CompilerError(plugin.name, f"UI page not found: {plugin.ui_page}")

        src_dir = self.webview_dir / "src"
        src_dir.mkdir(parents=True, exist_ok=True)
        (src_dir / "App.tsx").write_text(self.app_entry(plugin), encoding="utf-8")

        html_dir = output_dir / "html"
        html_dir.mkdir(parents=True, exist_ok=True)
        args = [*self.command, f"--outDir={html_dir}", "--emptyOutDir"]
        if not options.minify:
            args.append("--minify=false")

        await run_process(
            args,
            source=str(plugin.ui_page),
            cwd=self.webview_dir,
            env={"PLUGIN_WEBVIEW_ID": plugin.path_from_plugins_dir},
        )
        logger.info(f"UI page for {plugin.name} built into {html_dir}")
        return html_dir


# =============================================================================
# File Processing
# =============================================================================


def categorize(path_from_plugin_dir: str) -> FileCategory:
    """Category from the first structural segment of a plugin-relative path."""
    for part in Path(path_from_plugin_dir).parts[:-1]:
        if part == "client":
            return FileCategory.CLIENT
        if part == "server":
            return FileCategory.SERVER
        if part == "shared":
            return FileCategory.SHARED
    return FileCategory.OTHER


def categorize_outputs(processed: Sequence[ProcessedFile | None]) -> dict[FileCategory, list[str]]:
    """Group output paths (relative to the plugin output dir) by category."""
    result: dict[FileCategory, list[str]] = {category: [] for category in FileCategory}
    for item in processed:
        if item is None:
            continue
        result[item.category].append(item.output_path.as_posix())
    return result


class FileProcessor:
    """
    Compiles, copies or skips a single plugin file.

    - `plugin.json` and `.d.ts` declarations are skipped
    - scripts (.ts, .tsx, .jsx, .js) are bundled to `.js`
    - UI page sources under `html/` are left to the UI page builder
    - everything else (lua, json, css, assets) is copied as-is
    """

    def __init__(self, compiler: ArtifactCompiler, options: BuildOptions | None = None):
        self.compiler = compiler
        self.options = options or BuildOptions()

    async def process(
        self,
        file: PluginFile,
        output_dir: Path,
        *,
        has_ui_page: bool = False,
    ) -> ProcessedFile | None:
        if file.is_manifest_file or file.name.endswith(".d.ts"):
            return None

        relative = Path(file.path_from_plugin_dir)
        if has_ui_page and relative.parts[0] == "html":
            return None

        category = categorize(file.path_from_plugin_dir)
        suffix = file.path.suffix.lower()

        if suffix in SCRIPT_SUFFIXES:
            relative_output = relative.with_suffix(".js")
            platform = "node" if category is FileCategory.SERVER else "browser"
            await self.compiler.compile(
                file.path,
                output_dir / relative_output,
                platform=platform,
                options=self.options,
            )
        else:
            relative_output = relative
            destination = output_dir / relative_output
            destination.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copy2, file.path, destination)

        return ProcessedFile(
            source_path=relative,
            output_path=relative_output,
            category=category,
        )
