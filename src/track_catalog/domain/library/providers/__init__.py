"""
External metadata providers.
"""
