"""Core tree generation: configuration, strategies, nodes and the builder."""
