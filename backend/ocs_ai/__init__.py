"""
OCS AI answer proxy.
Forwards quiz lookups to an OpenAI-compatible chat completions endpoint.
"""

__version__ = "1.0.0"
