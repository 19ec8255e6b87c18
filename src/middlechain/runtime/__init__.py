"""Runtime layer: middleware engine and observability."""
