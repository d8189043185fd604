"""
Retrieval HTTP API.

FastAPI app factory lives in docflow.api.main.
"""
