"""
Pytest fixtures for the GeminiKit test suite.

- http_mocking: MockTransport route table, response builders, recording byte streams
"""
