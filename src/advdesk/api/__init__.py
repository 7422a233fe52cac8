"""
HTTP API for ADVDESK.
"""
