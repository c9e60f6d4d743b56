"""HTTP gateway (FastAPI) over the plugin registry."""
