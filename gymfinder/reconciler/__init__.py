"""Dataset reconciliation: load, back up, apply outcomes, persist."""
