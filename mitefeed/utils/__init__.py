"""
MiteFeed Utilities
=================

Shared exception hierarchy and logging helpers.
"""
