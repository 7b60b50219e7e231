"""
Test suite for epidash.

Network access is replaced by monkeypatching ``requests.get``; Shiny apps
are built but never served.
"""
