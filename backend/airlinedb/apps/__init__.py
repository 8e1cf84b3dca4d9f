# backend/airlinedb/apps/__init__.py
"""Feature apps. Each one owns its models, schemas, services and routers."""
