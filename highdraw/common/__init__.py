"""
Shared card types and I/O interfaces.
"""
