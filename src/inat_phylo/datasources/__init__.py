"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, session, low-level requests
    └── {feature}.py      # Fetch functions (one per endpoint/concept)

Sources:
  - inaturalist/  Observations for a user and/or project (paginated, throttled)
  - opentree/     TNRS name matching and synthetic-tree induced subtrees
"""
