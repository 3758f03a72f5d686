"""
Shared utilities: errors, caches, geometry, HTTP retry and logging
"""
