"""startforge -- compile TanStack Start projects from composable integrations."""

from startforge.engine import (
    AttributedCompileOutput,
    CompileOptions,
    CompileOutput,
    Integration,
    TemplateRenderError,
    compile,
    compile_with_attribution,
    process_template_file,
    relative_path,
)

__version__ = "0.1.0"

__all__ = [
    "AttributedCompileOutput",
    "CompileOptions",
    "CompileOutput",
    "Integration",
    "TemplateRenderError",
    "compile",
    "compile_with_attribution",
    "process_template_file",
    "relative_path",
]
