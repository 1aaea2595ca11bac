"""Core TestWeaver functionality: IR, directive lexing, scanning, merging, validation, persistence."""

from . import ir
from .config import TestweaverConfig, load_project_config
from .directive_lexer import parse_expectation_directive, parse_step_directive
from .dsl_validator import ValidationOptions, validate_file, validate_files
from .errors import (
    ConfigError,
    ErrorContext,
    GenerationError,
    ParseError,
    TestweaverError,
    ValidationError,
)
from .fileset import discover_source_files
from .ir_validator import validate_ir
from .issues import IRValidationResult, IssueSeverity, ValidationIssue, ValidationReport
from .merger import merge_suites, scan_files
from .persistence import load_ir, save_ir
from .scanner import scan_file, scan_source

__all__ = [
    "ir",
    "TestweaverError",
    "ParseError",
    "ValidationError",
    "GenerationError",
    "ConfigError",
    "ErrorContext",
    "TestweaverConfig",
    "load_project_config",
    "parse_step_directive",
    "parse_expectation_directive",
    "scan_file",
    "scan_source",
    "merge_suites",
    "scan_files",
    "discover_source_files",
    "validate_ir",
    "validate_file",
    "validate_files",
    "ValidationOptions",
    "IRValidationResult",
    "IssueSeverity",
    "ValidationIssue",
    "ValidationReport",
    "load_ir",
    "save_ir",
]
