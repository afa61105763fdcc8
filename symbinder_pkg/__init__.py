"""symbinder package: symbol normalization, LHS classification and expression binding."""

__all__ = [
    "config",
    "symbols",
    "parser",
    "rewriter",
    "dependencies",
    "collision",
    "binder",
    "parameter_manager",
    "function_manager",
    "evaluator",
    "cli",
    "types",
    "api",
    "logging_config",
]

# Public API exports

__api_exports__ = [
    "bind_expression",
    "normalize_text",
    "classify_lhs",
    "check_name_available",
]
