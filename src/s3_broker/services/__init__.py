"""Backend stores for object storage and identity."""
