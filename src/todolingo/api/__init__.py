"""
Proxy service.

- server.py: FastAPI app exposing POST /translate and POST /generate-subtasks
"""
