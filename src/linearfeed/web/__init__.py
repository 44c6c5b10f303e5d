"""FastAPI query layer."""
