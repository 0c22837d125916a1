"""tasks/ -- Task domain: dataclasses, persistence, and the cached service.

Layer rule: tasks/ may import from core/, cache/, and the users table in
auth/store.py (for the admin owner join). It does NOT import from api/.
"""
