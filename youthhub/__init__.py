"""
YouthHub API
Community backend for a church youth group
"""

__version__ = "1.0.0"
