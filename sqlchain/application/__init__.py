"""
Application Layer - Driver contracts and configuration.
"""
