"""
Loft - Offline audio library manager and player.
"""
__version__ = '0.1.0'
