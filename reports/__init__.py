"""Reports module - FPL data resolution layer.

This module contains:
- fpl_report/ - Bootstrap cache, configuration resolver and insight engine
"""
