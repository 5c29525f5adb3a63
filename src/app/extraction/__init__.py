"""Contact field extraction -- merge engine, remote field sync and recreation.

Provides the overwrite-policy merge of AI-extracted values into CRM
contacts (resolver, policy engine, payload sanitizer), synchronization of
stored custom-field snapshots with the live CRM schema, recreation of
deleted custom fields from those snapshots, and the SQLAlchemy models and
repository backing the operator's field configuration.
"""
