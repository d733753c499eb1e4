"""Application layer - ports and use-case services."""
