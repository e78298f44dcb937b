"""
Tests Package - Unit and Integration Tests

- test_validator / test_columns / test_sink: pure, file-system only
- test_client / test_paginator: Logs Search API served by httpx.MockTransport
- test_runner: end-to-end export through the process entry point
"""
