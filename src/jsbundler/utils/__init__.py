"""
jsbundler utilities package
"""

from .io_utils import read_source_file, normalize_path, display_path, write_text_atomic

__all__ = ["read_source_file", "normalize_path", "display_path", "write_text_atomic"]
