"""Book Directory - CLI helpers

- HTTP client for the Book Directory REST API (api_client.py)
- Output rendering for the CLI (ui_helpers.py)
"""
