"""Core types for crudkit: results, search models, settings and logging."""
