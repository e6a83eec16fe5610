"""Infrastructure adapters: configuration, event bus, queues, persistence, observability."""
