"""
Core constants for the invocation engine.

This module defines system-wide constants used across the codebase.
"""

# Author of events that carry user input
USER_AUTHOR = "user"

# Author of canned responses produced by a before_run short-circuit
MODEL_AUTHOR = "model"

# Content roles
USER_ROLE = "user"
MODEL_ROLE = "model"

# State scope prefixes; any other prefix is session-local
APP_PREFIX = "app:"
USER_PREFIX = "user:"

# Client-side function call ids are generated with this prefix
CLIENT_FUNCTION_CALL_ID_PREFIX = "client-"

# Synthetic function calls emitted when a tool needs user input
REQUEST_CREDENTIAL_FUNCTION_CALL_NAME = "request_credential"
REQUEST_CONFIRMATION_FUNCTION_CALL_NAME = "request_confirmation"
