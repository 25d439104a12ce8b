"""API module - FastAPI routers."""
