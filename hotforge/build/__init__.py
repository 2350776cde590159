"""
Build core: context, pipeline, stages and run coordination.

Usage:
    stages = BuildStages(PluginBuilder(FileProcessor(EsbuildCompiler())))
    coordinator = RebuildCoordinator(StageFactory(stages), BuildContext.from_config(config))
    await coordinator.build()
    await coordinator.rebuild(RebuildKind.PLUGIN, plugin_dir)
"""

from .compiler import (
    ArtifactCompiler,
    EsbuildCompiler,
    FileProcessor,
    UiPageBuilder,
    ViteUiPageBuilder,
    categorize,
    categorize_outputs,
    run_process,
)
from .context import BuildContext
from .coordinator import RebuildCoordinator, RunCoordinator
from .pipeline import BuildPipeline, Stage, StageHandler
from .plugin_builder import PluginBuilder, load_manifest, prepare_manifest
from .stages import BuildStages, LayoutFixReport, RebuildKind, StageFactory, fix_output_layout

__all__ = [
    # Compilers
    "ArtifactCompiler",
    "EsbuildCompiler",
    "FileProcessor",
    "UiPageBuilder",
    "ViteUiPageBuilder",
    "categorize",
    "categorize_outputs",
    "run_process",
    # Context and pipeline
    "BuildContext",
    "BuildPipeline",
    "Stage",
    "StageHandler",
    # Plugins
    "PluginBuilder",
    "load_manifest",
    "prepare_manifest",
    # Stages
    "BuildStages",
    "LayoutFixReport",
    "RebuildKind",
    "StageFactory",
    "fix_output_layout",
    # Coordination
    "RebuildCoordinator",
    "RunCoordinator",
]
