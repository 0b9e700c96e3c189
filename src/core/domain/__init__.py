"""Domain models and entities.

Plain data structures (Pydantic v2 and dataclasses). The domain knows nothing
about HTTP, terminals or the CLI.
"""
