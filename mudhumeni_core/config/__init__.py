"""
Configuration for Mudhumeni Core
"""
