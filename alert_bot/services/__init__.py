"""Risk Alert Bot services - alert store, registries and proactive messaging."""
