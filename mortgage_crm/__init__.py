"""Mortgage CRM Source Package.

Single-user pipeline tracker for mortgage deals.

Layers:
    - core: Configuration, logging, exceptions
    - db: Models, snapshot codec, key-value storage, backup
    - engine: Business logic (reminders, stages, needs, store, export)
    - content: Generated content (daily brief)
"""

__version__ = "0.1.0"
