"""
Shared helper utilities.
"""
