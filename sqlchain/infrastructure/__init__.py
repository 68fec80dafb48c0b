"""
Infrastructure Layer for sqlchain.

Key modules:
- database: query builder, statement rendering and drivers
- repositories: the DataModel active-record layer
- security: value sanitization
- monitoring: structured logging
"""
