"""Core interfaces/abstractions.

Contracts (Protocol) implemented by concrete adapters, so the access layer
depends on abstractions and tests can substitute fakes.
"""
