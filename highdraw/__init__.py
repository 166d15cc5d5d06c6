"""
highdraw: ten rounds of high card against the computer, dealt by the
deck-of-cards web service.
"""

__version__ = "0.1.0"
