"""
API v1 Helper Functions

Shared OpenAPI response definitions used by the endpoint modules.
"""
