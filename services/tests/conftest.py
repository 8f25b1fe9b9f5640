"""
Top-level test configuration for the Wharf Azure DevOps provider.
"""

import os

# Ensure test-friendly defaults
os.environ.setdefault("WHARF_JSON_LOGS", "false")
os.environ.setdefault("WHARF_LOG_LEVEL", "DEBUG")
os.environ.setdefault("WHARF_API_URL", "http://wharf-api.test")
