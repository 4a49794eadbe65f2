"""tsgen: structured TypeScript parsing, editing, analysis and formatting."""

__version__ = "0.3.0"

from .analyzer import CodeAnalyzer, analyze_file, analyze_source, compare_structure
from .operations import MalformedOperationError, operation_from_dict
from .parser import GrammarUnavailableError, parse_file, parse_source
from .printer import (
    add_license_header,
    format_source,
    generate_doc,
    generate_export_statement,
    generate_import_statement,
)
from .scaffold import GeneratorConfig, run_generator
from .transformer import transform

__all__ = [
    "__version__",
    "CodeAnalyzer",
    "GeneratorConfig",
    "GrammarUnavailableError",
    "MalformedOperationError",
    "add_license_header",
    "analyze_file",
    "analyze_source",
    "compare_structure",
    "format_source",
    "generate_doc",
    "generate_export_statement",
    "generate_import_statement",
    "operation_from_dict",
    "parse_file",
    "parse_source",
    "run_generator",
    "transform",
]
