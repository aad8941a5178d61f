"""
Pixel grid animation service.
"""
