"""
StubTap

Hot-reloading JSON stub server for API testing.
"""

__version__ = '1.0.0'
