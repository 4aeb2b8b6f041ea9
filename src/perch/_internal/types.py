"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# Status override handler: receives (request?) and returns a response value
StatusHandler: TypeAlias = Callable[..., Any]
