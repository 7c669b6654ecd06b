"""
Pytest fixtures for the ClientRuntime test suite.

Fixtures are organized by subsystem:
- http_mocking: scripted HTTPX mock transports and response builders
"""
