"""Host multiplexer: pattern table, matching, and default error responses.

The router layer registers endpoints here and serves every request
through ``ServeMux.serve()``. It never changes how the multiplexer
answers; it only decorates the writer it hands in.
"""

from perch.mux.pattern import EXACT_MARKER, ParsedPattern, PatternKind, parse_pattern
from perch.mux.servemux import Endpoint, MuxMatch, MuxRoute, ServeMux

__all__ = [
    "EXACT_MARKER",
    "Endpoint",
    "MuxMatch",
    "MuxRoute",
    "ParsedPattern",
    "PatternKind",
    "ServeMux",
    "parse_pattern",
]
