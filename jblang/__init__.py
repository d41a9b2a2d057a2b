"""Translate JBLang syntax trees into C with optional reference-counting calls."""

__version__ = "0.1.0"
__all__ = ["codegen", "errors", "nodes", "symbols", "transpiler", "typesystem"]