"""
Album Log Library

Core modules for the personal album log: import reconciliation, Last.fm
field merging, and clients for Last.fm and the hosted library table.
"""

__version__ = "1.0.0"
__author__ = "Album Log Contributors"

from .config_manager import Config

__all__ = ['Config']
