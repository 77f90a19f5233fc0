"""
acipatch
Streaming rewrite of App Container Images with a patched manifest.
"""
__version__ = "0.1.0"
