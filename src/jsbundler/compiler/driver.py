"""
Bundle Driver

Runs one build: scan -> order -> ids -> transform -> runtime (via the pass
manager), then template, validation, minification, source map and packaging.
Every build gets a fresh BuildSession; nothing is shared between builds.
"""

import logging
import os
import time
from typing import Dict, List, Mapping, Optional

from ..output.minifier import Minifier
from ..output.packager import BuildStats, Packager, map_path_for
from ..output.template import UserscriptTemplate
from ..output.validator import OutputValidator
from ..passes.base import BuildSession, PassManager
from ..passes.build_order import BuildOrderPass
from ..passes.dependency_graph import DependencyGraphPass
from ..passes.module_ids import ModuleIdPass
from ..passes.module_transform import ModuleTransformPass
from ..passes.runtime_generation import RuntimeGenerationPass
from ..shared.errors import BundleError, ErrorReporter
from .config import BundleConfig

logger = logging.getLogger(__name__)

MINIFIED_MAP_WARNING = (
    "source map refers to the unminified layout; line numbers will not match the minified output"
)


class BuildResult:
    """Build result"""
    def __init__(
        self,
        success: bool = False,
        output_path: Optional[str] = None,
        stats: Optional[BuildStats] = None,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
        build_order: Optional[List[str]] = None,
        module_ids: Optional[Dict[str, str]] = None,
        reporter: Optional[ErrorReporter] = None,
    ):
        self.success = success
        self.output_path = output_path
        self.stats = stats
        self.errors = errors or []
        self.warnings = warnings or []
        self.build_order = build_order or []
        self.module_ids = module_ids or {}
        self.reporter = reporter

    def has_errors(self) -> bool:
        return bool(self.errors) or not self.success

    def get_errors(self) -> List[str]:
        """Rendered diagnostics, one string for all errors"""
        if self.reporter is not None and self.reporter.has_errors():
            return [self.reporter.format_all_errors(color=False)]
        return list(self.errors)


class BundleDriver:
    """Orchestrates the passes and the output stages for one config."""

    def __init__(self):
        self.pass_manager = PassManager()
        self._register_passes()

    def _register_passes(self) -> None:
        self.pass_manager.register_pass(DependencyGraphPass)
        self.pass_manager.register_pass(BuildOrderPass)
        self.pass_manager.register_pass(ModuleIdPass)
        self.pass_manager.register_pass(ModuleTransformPass)
        self.pass_manager.register_pass(RuntimeGenerationPass)

    def build(
        self,
        config: BundleConfig,
        source_overlay: Optional[Mapping[str, str]] = None,
    ) -> BuildResult:
        """
        Build the artifact described by `config`.

        Fatal problems (missing module, cycle, duplicate id, malformed
        statement, undecodable file, bad metadata, syntax failure, I/O) end the
        build with success=False and nothing written.
        """
        started = time.perf_counter()
        session = BuildSession(config, source_overlay)
        reporter = session.reporter

        try:
            self.pass_manager.run_all(session)
            artifact, map_json = self._render(session)
            stats = Packager().write(
                artifact,
                config.output_path,
                module_count=len(session.build_order),
                source_map_json=map_json,
                report_config=config.summary() if config.options.generate_report else None,
            )
        except BundleError as e:
            reporter.report_exception(e)
            logger.error(f"Build failed: {e.message}")
            return self._failed(session)
        except OSError as e:
            reporter.report_error(f"I/O error: {e}")
            logger.error(f"Build failed: {e}")
            return self._failed(session)

        elapsed = time.perf_counter() - started
        logger.info(
            f"Built {session.display(config.output_path)}: {stats.size} bytes, "
            f"{stats.modules} module(s), {len(reporter.warnings)} warning(s) in {elapsed:.2f}s"
        )
        return BuildResult(
            success=True,
            output_path=config.output_path,
            stats=stats,
            warnings=reporter.warning_messages(),
            build_order=list(session.build_order),
            module_ids=dict(session.module_ids),
            reporter=reporter,
        )

    def _failed(self, session: BuildSession) -> BuildResult:
        return BuildResult(
            success=False,
            errors=session.reporter.error_messages(),
            warnings=session.reporter.warning_messages(),
            build_order=list(session.build_order),
            module_ids=dict(session.module_ids),
            reporter=session.reporter,
        )

    def _render(self, session: BuildSession):
        """Template, validate, minify and attach the source map reference."""
        config = session.config
        options = config.options
        reporter = session.reporter
        output_name = session.display(config.output_path)

        template = UserscriptTemplate(config.metadata)
        for warning in template.validate():
            reporter.report_warning(warning)
        artifact = template.wrap(session.bundle)
        session.source_map.shift(template.header_line_count())
        session.source_files[output_name] = artifact

        validator = OutputValidator(options.syntax_check, options.max_console_calls)
        validator.check_syntax(artifact, output_name)
        for warning in validator.heuristic_warnings(artifact):
            reporter.report_warning(warning)

        if options.minify:
            minifier = Minifier(
                drop_console=not options.preserve_console,
                console_methods=options.drop_console_methods,
            )
            artifact = minifier.minify(artifact)
            session.source_files[output_name] = artifact
            validator.check_syntax(artifact, output_name)
            if options.sourcemap != "off":
                logger.warning(MINIFIED_MAP_WARNING)
                reporter.report_warning(MINIFIED_MAP_WARNING)

        map_json = None
        if options.sourcemap == "inline":
            artifact = _append_line(artifact, session.source_map.inline_comment())
        elif options.sourcemap == "external":
            map_name = os.path.basename(map_path_for(config.output_path))
            artifact = _append_line(artifact, session.source_map.external_comment(map_name))
            map_json = session.source_map.to_json()
        return artifact, map_json


def _append_line(text: str, line: str) -> str:
    if not text.endswith("\n"):
        text += "\n"
    return f"{text}{line}\n"
