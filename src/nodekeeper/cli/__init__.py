"""
Command line interface for the maintenance commands.
"""
