"""
apps.storage.services package.
"""
