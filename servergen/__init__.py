"""servergen -- interactive generator for Express/TypeScript REST server projects."""

__version__ = "1.0.0"
