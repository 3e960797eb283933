"""
Short code generation and the short URL table.

    CodeGenerator   AAAA, AAAB, ... (base-26 counter)
    MappingStore    short URL → original URL, memory only
"""

from .codes import CodeGenerator, OverflowPolicy, increment_code
from .store import MappingStore

__all__ = [
    "CodeGenerator",
    "OverflowPolicy",
    "increment_code",
    "MappingStore",
]
