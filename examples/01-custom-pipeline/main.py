"""
Custom Pipeline Example

This example demonstrates the build pipeline pattern:
1. Write stage handlers that share a BuildContext
2. Compose them with the fluent BuildPipeline
3. Run and inspect the per-run summary

No compiler is needed; the stages only discover plugins and lay out
output folders.

Run: python examples/01-custom-pipeline/main.py
"""

import asyncio
import json
import logging
import tempfile
from pathlib import Path

from hotforge import BuildContext, BuildPipeline
from hotforge.build import fix_output_layout
from hotforge.plugins import output_info, scan_plugins

# =============================================================================
# Sample Project
# =============================================================================


def create_project(root: Path) -> None:
    for relative in ("[misc]/greeter", "[misc]/[tools]/counter", "inventory"):
        plugin_dir = root / "src" / "plugins" / relative
        (plugin_dir / "client").mkdir(parents=True)
        name = relative.split("/")[-1]
        (plugin_dir / "plugin.json").write_text(json.dumps({"name": name, "version": "1.0.0"}))
        (plugin_dir / "client" / "main.ts").write_text("export {};\n")


# =============================================================================
# Custom Stages
# =============================================================================


async def discover(ctx: BuildContext) -> None:
    ctx.plugins = scan_plugins(ctx.plugins_dir)
    ctx.logger.info("Discovered plugins", count=len(ctx.plugins))


async def create_output_dirs(ctx: BuildContext) -> None:
    for plugin in ctx.plugins:
        info = output_info(plugin, ctx.dist_dir)
        (info.output_dir / "client").mkdir(parents=True, exist_ok=True)


async def fix_layout(ctx: BuildContext) -> None:
    report = fix_output_layout(ctx.dist_dir)
    ctx.logger.info("Layout fixed", manifests_added=report.manifests_added)


# =============================================================================
# Main
# =============================================================================


async def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        create_project(root)

        pipeline = (
            BuildPipeline()
            .add_stage("discover", discover)
            .add_stage("create_output_dirs", create_output_dirs)
            .add_stage("fix_layout", fix_layout)
        )
        print(f"Pipeline: {pipeline}")
        print(f"Stages: {pipeline.stage_names}")
        print()

        ctx = BuildContext(
            root_dir=root,
            plugins_dir=root / "src" / "plugins",
            core_dir=root / "src" / "core",
            dist_dir=root / "dist",
        )
        await pipeline.run(ctx)

        print()
        print(f"Plugins: {[p.name for p in ctx.plugins]}")
        for manifest in sorted((root / "dist").rglob("fxmanifest.lua")):
            print(f"Manifest: {manifest.relative_to(root)}")
        print(f"Summary: {ctx.summary()}")


if __name__ == "__main__":
    asyncio.run(main())
