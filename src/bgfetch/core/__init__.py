"""UI-agnostic fetch primitives, page planning and outcomes."""
