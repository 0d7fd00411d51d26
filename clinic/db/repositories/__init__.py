"""
Per-domain repository modules for database access.

Repositories own queries and persistence; business rules (availability,
versioning, installment maths) live in ``clinic.services``.
"""
