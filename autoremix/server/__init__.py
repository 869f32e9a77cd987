"""HTTP run controller: FastAPI app exposing the single-run pipeline."""
