"""
HTTP API

Responsibilities:
- Exposes health, template listing and PDF generation over HTTP
- Wires registry, compiler, pipeline and service together at startup

Owns: FastAPI app and routes
Never: Contains generation logic or error mapping of its own
"""
