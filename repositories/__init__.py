"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates one document collection of a user's namespace.
Repositories read raw JSONB documents and return domain model objects.
"""
