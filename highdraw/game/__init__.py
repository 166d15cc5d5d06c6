"""
Session state and its pure transitions.
"""
