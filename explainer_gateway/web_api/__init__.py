"""
Web API - endpoints used by the browser widget and administrators.
"""
