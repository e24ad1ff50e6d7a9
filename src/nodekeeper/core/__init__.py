"""
Core configuration, constants, errors and the execution context.
"""
