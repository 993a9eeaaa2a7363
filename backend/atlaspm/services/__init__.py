# Services package init
"""
AtlasPM Backend — Services Layer
=================================

What:  Business rules between the routes (HTTP) and the database.
How:   Each resource has a stateless service singleton whose methods take an
       AsyncSession, open exactly one transaction and raise AtlasPM errors.

The update protocol:
    - versioning.py:    version guard (conditional UPDATE ... RETURNING)
    - associations.py:  join-table reconciliation to a desired set
    - orchestrator.py:  both of the above in one transaction, commit/rollback
    - transaction.py:   per-call deadline and IntegrityError classification

Shared helpers:
    - pagination.py:    page/page_size/sort handling and metadata
    - passwords.py:     bcrypt hashing for user accounts

Resource services:
    project, client, proposal, role, activity, user, timesheet
"""
