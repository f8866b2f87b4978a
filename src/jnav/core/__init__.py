"""Navigation engine: store, scoring, ranking, resolution and selection."""
