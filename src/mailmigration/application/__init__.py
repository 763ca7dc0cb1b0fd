"""Application layer - ports, use cases, and pipeline components."""
