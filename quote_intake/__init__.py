"""Quote intake core: merges per-page extraction results and keeps form collections consistent."""

__version__ = "0.1.0"
