"""Infrastructure layer - adapters, in-memory stubs, queue and observability."""
