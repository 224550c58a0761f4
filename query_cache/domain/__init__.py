"""
Bundled query definitions.
"""
