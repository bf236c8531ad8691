"""SQLAlchemy-backed infrastructure for crudkit."""
