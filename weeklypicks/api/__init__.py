"""HTTP API: FastAPI application, dependencies and routes."""
