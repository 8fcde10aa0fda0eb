"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants (URLs, headers, limits, CRS)
- exceptions: Fatal / recoverable exception hierarchy
"""
